"""All magic numbers and configuration constants."""

# Word-timing estimation
BASE_CHAR_DURATION_MS = 1000.0      # ms per character at speed 1.0, scaled by 1/speed
WORD_DURATION_FACTOR = 0.1          # word duration = length × base × factor
MIN_WORD_DURATION_FACTOR = 0.3      # floor: base × factor
FIRST_WORD_OFFSET = 0.5             # first highlight fires midway through first word

# Playback
DEFAULT_LANGUAGE = "English"
DEFAULT_LANGUAGE_SPEED = 1.0
SPEED_RANGE = (0.5, 2.0)            # accepted speed multipliers (min, max)
STATE_POLL_INTERVAL = 0.1           # seconds between engine pause/speaking reconciliations
ENGINE_HOLD_STEP = 0.05             # seconds, granularity of pause/stop checks while a clip plays
SCENE_PREFIX = "Scene: "            # spoken before scene narration
TRANSLATION_BEFORE = "before"
TRANSLATION_AFTER = "after"
TRANSLATION_BOTH = "both"

# TTS
TTS_RETRY_COUNT = 3                 # max retries per synthesized segment
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
FALLBACK_VOICE = "en-US-AriaNeural"

# Generation
OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_MODELS_URL = (
    "https://openrouter.ai/api/frontend/models/find"
    "?fmt=table&max_price=0&order=newest"
    "&supported_parameters=structured_outputs%2Cmax_tokens%2Cresponse_format"
)
DEFAULT_MODEL = "allenai/olmo-3.1-32b-think:free"
DEFAULT_STORY_PITCH = "Create a conversation between an adult and a child playing a guessing game"
DEFAULT_DIALOG_LANGUAGES = ["Arabic", "Hebrew"]
DEFAULT_SCREENPLAY_LANGUAGE = "Hebrew"
DEFAULT_MIN_LINES = 50
PITCH_LENGTH_RANGE = (10, 200)
MIN_LINES_RANGE = (1, 200)
MODELS_TIMEOUT_SECONDS = 10
MODELS_CACHE_TTL_SECONDS = 3600     # one hour

# Storage
OUTPUT_DIR = "output"
CONFIG_FILE = "config.json"
HISTORY_FILE = "history.json"
MODELS_CACHE_FILE = "models.json"
MAX_HISTORY = 20
VERSION = "0.1.0"
