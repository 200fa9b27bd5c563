import logging
from dataclasses import dataclass
from typing import List, Optional

from moodscape import config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionHistoryItem:
    date: str
    mood: str
    context: str
    affirmation: str
    intensity: Optional[int] = None
    image_url: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "date": self.date,
            "mood": self.mood,
            "context": self.context,
            "affirmation": self.affirmation,
        }
        if self.intensity is not None:
            data["intensity"] = self.intensity
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SessionHistoryItem":
        if not isinstance(data, dict):
            raise ValueError("history item must be an object")
        try:
            return cls(
                date=str(data["date"]),
                mood=str(data["mood"]),
                context=str(data.get("context", "")),
                affirmation=str(data.get("affirmation", "")),
                intensity=data.get("intensity"),
                image_url=data.get("imageUrl"),
            )
        except KeyError as e:
            raise ValueError(f"history item missing {e}") from e


def load_history(store) -> List[SessionHistoryItem]:
    """Newest first. Absent or unreadable history is an empty list."""
    try:
        data = store.load()
    except Exception:
        logger.exception("Failed to load session history")
        return []
    if not isinstance(data, list):
        return []
    items = []
    for entry in data:
        try:
            items.append(SessionHistoryItem.from_dict(entry))
        except ValueError as e:
            logger.warning("Skipping malformed history entry: %s", e)
    return items


def record_session(store, item: SessionHistoryItem, limit: int = config.HISTORY_LIMIT) -> List[SessionHistoryItem]:
    history = [item] + load_history(store)
    history = history[:limit]
    try:
        store.save([h.to_dict() for h in history])
    except Exception:
        logger.exception("Failed to save session history")
    return history


def clear_history(store):
    try:
        store.clear()
    except Exception:
        logger.exception("Failed to clear session history")


# ===============================
# WELLNESS LEVELS
# ===============================

@dataclass(frozen=True)
class UserLevel:
    level: int
    name: str
    threshold: int
    icon: str = ""


USER_LEVELS = (
    UserLevel(1, "Sprout", 0),
    UserLevel(2, "Seedling", 5),
    UserLevel(3, "Sapling", 10, "🌱"),
    UserLevel(4, "Flourishing", 25, "✨"),
    UserLevel(5, "Sanctuary Guardian", 50, "🌟"),
)


def level_for(session_count: int) -> UserLevel:
    return next((lvl for lvl in reversed(USER_LEVELS) if session_count >= lvl.threshold), USER_LEVELS[0])


def next_level(session_count: int) -> Optional[UserLevel]:
    return next((lvl for lvl in USER_LEVELS if lvl.threshold > session_count), None)
