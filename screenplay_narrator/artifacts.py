"""JSON artifacts: generated-screenplay history under the output directory."""

import json
import os
import uuid
from datetime import datetime, timezone

from screenplay_narrator.constants import HISTORY_FILE, MAX_HISTORY, OUTPUT_DIR


def write_artifact(base_dir: str, filename: str, data) -> str:
    """Write JSON artifact to base_dir/filename.

    Returns path to the written file.
    """
    os.makedirs(base_dir, exist_ok=True)
    path = os.path.join(base_dir, filename)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    return path


def load_artifact(base_dir: str, filename: str):
    """Read JSON artifact. Returns None if file doesn't exist."""
    path = os.path.join(base_dir, filename)
    if not os.path.exists(path):
        return None
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_history(base_dir: str = OUTPUT_DIR) -> list[dict]:
    """Return history entries, newest first. Corrupt history reads as empty."""
    try:
        history = load_artifact(base_dir, HISTORY_FILE)
    except json.JSONDecodeError:
        return []
    return history if isinstance(history, list) else []


def add_to_history(screenplay: dict, params: dict, base_dir: str = OUTPUT_DIR) -> dict:
    """Prepend a generated screenplay with the parameters that produced it.

    Keeps at most MAX_HISTORY entries. Returns the new entry.
    """
    entry = {
        "id": f"{datetime.now(timezone.utc):%Y%m%d%H%M%S}-{uuid.uuid4().hex[:6]}",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "screenplay": screenplay,
        "params": params,
    }
    history = [entry] + load_history(base_dir)
    write_artifact(base_dir, HISTORY_FILE, history[:MAX_HISTORY])
    return entry


def find_in_history(entry_id: str, base_dir: str = OUTPUT_DIR) -> dict | None:
    for entry in load_history(base_dir):
        if entry.get("id") == entry_id:
            return entry
    return None


def remove_from_history(entry_id: str, base_dir: str = OUTPUT_DIR) -> bool:
    """Delete one entry. Returns False if no entry had that id."""
    history = load_history(base_dir)
    kept = [entry for entry in history if entry.get("id") != entry_id]
    if len(kept) == len(history):
        return False
    write_artifact(base_dir, HISTORY_FILE, kept)
    return True


def clear_history(base_dir: str = OUTPUT_DIR) -> int:
    """Remove every entry. Returns how many were removed."""
    count = len(load_history(base_dir))
    write_artifact(base_dir, HISTORY_FILE, [])
    return count
