"""Exception types shared by the generation and parsing layers."""


class ScreenplayFormatError(ValueError):
    """Raised when a document does not have the screenplay shape."""


class GenerationError(RuntimeError):
    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GenerationCancelled(GenerationError):
    """The target's own cancellation signal fired before the call settled."""
