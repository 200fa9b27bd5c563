import json
import logging
import os
from typing import Iterable, List, Optional

from moodscape import config
from moodscape.patterns import NamedBreathingPattern

logger = logging.getLogger(__name__)


def user_path(username: str, slot: str, data_dir: Optional[str] = None) -> str:
    """Return a safe file path for the given username and storage slot."""
    safe = "".join(c for c in username if c.isalnum() or c in ("-", "_")).lower()
    return os.path.join(data_dir or config.DATA_DIR, f"{safe or 'anonymous'}_{slot}.json")


class JsonFileStore:
    """One JSON document on disk. `load()` returns None when the file is absent."""

    def __init__(self, path: str):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return None
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, data):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def clear(self):
        if os.path.exists(self.path):
            os.remove(self.path)


class MemoryStore:
    """In-process stand-in for JsonFileStore that still goes through JSON text."""

    def __init__(self, text: Optional[str] = None):
        self.text = text

    def load(self):
        if self.text is None:
            return None
        return json.loads(self.text)

    def save(self, data):
        self.text = json.dumps(data, ensure_ascii=False)

    def clear(self):
        self.text = None


# ===============================
# CUSTOM BREATHING PATTERNS
# ===============================

def load_custom_patterns(store) -> List[NamedBreathingPattern]:
    if store is None:
        return []
    try:
        data = store.load()
    except Exception:
        logger.exception("Failed to load custom patterns")
        return []
    if data is None:
        return []
    if not isinstance(data, list):
        logger.error("Custom pattern slot holds %s, expected a list", type(data).__name__)
        return []

    patterns = []
    for entry in data:
        try:
            pattern = NamedBreathingPattern.from_dict(entry)
        except ValueError as e:
            logger.warning("Skipping malformed custom pattern %r: %s", entry, e)
            continue
        if not pattern.is_custom:
            logger.warning("Skipping non-custom pattern %r in custom slot", pattern.name)
            continue
        patterns.append(pattern)
    return patterns


def save_custom_patterns(store, patterns: Iterable[NamedBreathingPattern]) -> bool:
    """Persist only the custom entries of `patterns`, overwriting the slot."""
    if store is None:
        return False
    payload = [p.to_dict() for p in patterns if p.is_custom]
    try:
        store.save(payload)
    except Exception:
        logger.exception("Failed to save custom patterns")
        return False
    return True
