from dataclasses import dataclass, replace
from typing import Optional

PHASES = ("inhale", "hold", "exhale", "postExhaleHold")


def _seconds(data: dict, key: str) -> int:
    value = data.get(key)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"invalid duration for {key!r}: {value!r}")
    return value


@dataclass(frozen=True)
class BreathingPattern:
    """Four phase durations in whole seconds. A 0 phase is skipped."""

    inhale: int
    hold: int
    exhale: int
    postExhaleHold: int

    def duration(self, phase: str) -> int:
        if phase not in PHASES:
            raise KeyError(phase)
        return getattr(self, phase)

    def with_phase(self, phase: str, seconds: int) -> "BreathingPattern":
        if phase not in PHASES:
            raise KeyError(phase)
        return replace(self, **{phase: seconds})

    def is_empty(self) -> bool:
        return all(self.duration(p) == 0 for p in PHASES)

    def to_dict(self) -> dict:
        return {p: self.duration(p) for p in PHASES}

    @classmethod
    def from_dict(cls, data: dict) -> "BreathingPattern":
        if not isinstance(data, dict):
            raise ValueError("pattern must be an object")
        return cls(**{p: _seconds(data, p) for p in PHASES})


@dataclass(frozen=True)
class NamedBreathingPattern:
    name: str
    pattern: BreathingPattern
    description: Optional[str] = None
    is_custom: bool = False

    def to_dict(self) -> dict:
        data = {"name": self.name}
        if self.description is not None:
            data["description"] = self.description
        data["pattern"] = self.pattern.to_dict()
        data["isCustom"] = self.is_custom
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "NamedBreathingPattern":
        if not isinstance(data, dict):
            raise ValueError("named pattern must be an object")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"invalid pattern name: {name!r}")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise ValueError("description must be a string")
        return cls(
            name=name,
            pattern=BreathingPattern.from_dict(data.get("pattern")),
            description=description,
            is_custom=data.get("isCustom") is True,
        )


# ===============================
# BUILT-IN PATTERNS
# ===============================

BOX_BREATHING = NamedBreathingPattern(
    name="Box Breathing",
    description="Equal-length breaths to focus the mind.",
    pattern=BreathingPattern(inhale=4, hold=4, exhale=4, postExhaleHold=4),
)

RELAXING_BREATH = NamedBreathingPattern(
    name="4-7-8 Relax",
    description="A calming breath to reduce anxiety.",
    pattern=BreathingPattern(inhale=4, hold=7, exhale=8, postExhaleHold=0),
)

DEEPER_CALM = NamedBreathingPattern(
    name="Deeper Calm",
    description="Longer exhales for deep relaxation.",
    pattern=BreathingPattern(inhale=4, hold=4, exhale=6, postExhaleHold=2),
)

DEFAULT_PATTERNS = (BOX_BREATHING, RELAXING_BREATH, DEEPER_CALM)


def find_or_create_named_pattern(pattern: BreathingPattern, title: str) -> NamedBreathingPattern:
    """Return the built-in matching `pattern` field by field, or a new
    session-only entry named `title`.

    The built-in is returned as-is so callers can compare by identity.
    """
    for builtin in DEFAULT_PATTERNS:
        if builtin.pattern == pattern:
            return builtin

    # AI-suggested patterns are not custom, so they are never persisted
    return NamedBreathingPattern(
        name=title,
        description="Your AI-suggested pattern.",
        pattern=pattern,
        is_custom=False,
    )


def is_builtin(pattern: NamedBreathingPattern) -> bool:
    return any(pattern.name == p.name for p in DEFAULT_PATTERNS)
