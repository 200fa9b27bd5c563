"""
Breathing guide engine.

One `BreathingSession` owns its pattern list, phase cycle and audio context.
The cycle is driven from a single monotonic phase deadline: `poll()` emits the
phase advance once the deadline passes and derives the per-second countdown
from the same timestamp, so the two never drift apart.
"""
import logging
import math
import time
from dataclasses import dataclass, replace
from typing import List, Optional

from moodscape.audio import ToneContext
from moodscape.patterns import (
    DEFAULT_PATTERNS,
    PHASES,
    BreathingPattern,
    NamedBreathingPattern,
    find_or_create_named_pattern,
)
from moodscape.storage import load_custom_patterns, save_custom_patterns

logger = logging.getLogger(__name__)

EDITED_SUFFIX = " (edited)"

# (frequency Hz, volume, seconds)
BREATH_TONE = (600, 0.2, 0.2)
HOLD_TONE = (400, 0.15, 0.15)

PHASE_LABELS = {
    "inhale": "Inhale",
    "hold": "Hold",
    "exhale": "Exhale",
    "postExhaleHold": "Hold",
}


class SessionClosedError(RuntimeError):
    pass


@dataclass(frozen=True)
class PhaseChange:
    phase_index: int
    phase: str
    duration: int
    at: float


@dataclass(frozen=True)
class PendingConfirmation:
    """A question the UI must answer before the engine acts."""

    kind: str  # "save" or "delete"
    message: str
    default: Optional[str] = None
    target: Optional[NamedBreathingPattern] = None


def tone_for(phase: str):
    return BREATH_TONE if phase in ("inhale", "exhale") else HOLD_TONE


def base_name(name: str) -> str:
    return name.split(EDITED_SUFFIX)[0]


def unique_name(name: str, taken) -> str:
    """`name`, or `name (AI)`, `name (AI 2)`, ... if it is already taken."""
    if name not in taken:
        return name
    candidate = f"{name} (AI)"
    n = 2
    while candidate in taken:
        candidate = f"{name} (AI {n})"
        n += 1
    return candidate


class BreathingSession:
    def __init__(
        self,
        pattern: BreathingPattern,
        title: str,
        on_close=None,
        store=None,
        tone_context_factory=ToneContext,
        clock=time.monotonic,
    ):
        self._on_close = on_close
        self._store = store
        self._tone_context_factory = tone_context_factory
        self._clock = clock

        # Names are unique within the active set: built-ins win, then the
        # AI-derived entry (renamed on a clash), then custom patterns
        custom = []
        taken = {p.name for p in DEFAULT_PATTERNS}
        for p in load_custom_patterns(store):
            if p.name in taken:
                logger.warning("Ignoring custom pattern %r, the name is already in use", p.name)
                continue
            taken.add(p.name)
            custom.append(p)

        initial = find_or_create_named_pattern(pattern, title)
        patterns = list(DEFAULT_PATTERNS)
        if not any(initial is p for p in DEFAULT_PATTERNS):
            initial = replace(initial, name=unique_name(initial.name, taken))
            patterns.insert(0, initial)
        self.all_patterns: List[NamedBreathingPattern] = patterns + custom

        self.current_pattern = initial
        self.phase_index = 0
        self.countdown = initial.pattern.inhale
        self.is_editing = False
        self.pending: Optional[PendingConfirmation] = None
        self.closed = False
        self.started = False

        self.audio: Optional[ToneContext] = None
        self._entered_at: Optional[float] = None
        self._deadline: Optional[float] = None

    # ===============================
    # LIFECYCLE
    # ===============================

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def start(self):
        self._ensure_open()
        if self.started:
            return
        try:
            self.audio = self._tone_context_factory()
        except Exception:
            # Tones become no-ops, the cycle still runs
            logger.warning("No audio output available for breathing session", exc_info=True)
            self.audio = None
        self.started = True
        now = self._clock()
        self._enter_phase(0, now, now)

    def close(self):
        if self.closed:
            return
        self.closed = True
        self._deadline = None
        self._entered_at = None
        try:
            if self.audio is not None:
                self.audio.close()
        finally:
            self.audio = None
            if self._on_close is not None:
                self._on_close()

    def handle_key(self, key: str):
        if key == "Escape":
            self.close()

    # ===============================
    # PHASE CYCLE
    # ===============================

    @property
    def phase(self) -> str:
        return PHASES[self.phase_index]

    @property
    def phase_label(self) -> str:
        return PHASE_LABELS[self.phase]

    @property
    def duration(self) -> int:
        return self.current_pattern.pattern.duration(self.phase)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def is_stalled(self) -> bool:
        return self.started and not self.closed and self._deadline is None

    def _enter_phase(self, index: int, at: float, now: float) -> bool:
        """Enter `index` at time `at`, skipping zero-length phases.

        Returns False when every phase is 0 and the cycle cannot run.
        """
        pattern = self.current_pattern.pattern
        for _ in range(len(PHASES)):
            d = pattern.duration(PHASES[index])
            if d > 0:
                self.phase_index = index
                self.countdown = d
                self._entered_at = at
                self._deadline = at + d
                # Phases crossed while catching up stay silent
                if self._deadline > now:
                    self._play_tone(PHASES[index])
                return True
            index = (index + 1) % len(PHASES)

        self.phase_index = 0
        self.countdown = 0
        self._entered_at = None
        self._deadline = None
        return False

    def _restart(self):
        if not self.started or self.closed:
            self.phase_index = 0
            self.countdown = self.current_pattern.pattern.inhale
            return
        now = self._clock()
        self._enter_phase(0, now, now)

    def poll(self, now: Optional[float] = None) -> List[PhaseChange]:
        """Advance the cycle to `now` and refresh the countdown."""
        if self.closed or not self.started:
            return []
        if self.audio is not None:
            self.audio.reap()
        if self._deadline is None:
            return []
        if now is None:
            now = self._clock()

        changes = []
        while self._deadline is not None and now >= self._deadline:
            at = self._deadline
            self._enter_phase((self.phase_index + 1) % len(PHASES), at, now)
            changes.append(PhaseChange(self.phase_index, self.phase, self.duration, at))
        if self._deadline is None:
            return changes

        elapsed = now - self._entered_at
        self.countdown = max(1, self.duration - math.floor(elapsed))
        return changes

    def _play_tone(self, phase: str):
        if self.audio is None:
            return
        frequency, volume, seconds = tone_for(phase)
        self.audio.play_sound(frequency, volume, seconds)

    # ===============================
    # USER INTERACTION
    # ===============================

    def _ensure_open(self):
        if self.closed:
            raise SessionClosedError("breathing session is closed")

    def select_pattern(self, pattern: NamedBreathingPattern):
        self._ensure_open()
        self.current_pattern = pattern
        self.is_editing = False
        self._restart()

    def change_pattern_value(self, phase: str, value):
        self._ensure_open()
        if phase not in PHASES:
            raise KeyError(phase)
        try:
            seconds = int(value)
        except (TypeError, ValueError):
            seconds = 0
        seconds = max(seconds, 0)

        current = self.current_pattern
        self.current_pattern = replace(
            current,
            name=f"{base_name(current.name)}{EDITED_SUFFIX}",
            pattern=current.pattern.with_phase(phase, seconds),
        )
        self._restart()

    def toggle_editing(self):
        self._ensure_open()
        self.is_editing = not self.is_editing

    def find_pattern(self, name: str) -> Optional[NamedBreathingPattern]:
        return next((p for p in self.all_patterns if p.name == name), None)

    def request_save_pattern(self) -> PendingConfirmation:
        self._ensure_open()
        self.pending = PendingConfirmation(
            kind="save",
            message="Enter a name for your custom pattern:",
            default=self.current_pattern.name.replace(EDITED_SUFFIX, ""),
        )
        return self.pending

    def save_pattern(self, name: Optional[str]) -> Optional[NamedBreathingPattern]:
        self._ensure_open()
        if not name or not name.strip():
            return None
        name = name.strip()

        existing = self.find_pattern(name)
        if existing is not None and not existing.is_custom:
            logger.info("Refusing to overwrite non-custom pattern %r", name)
            return None

        saved = replace(self.current_pattern, name=name, is_custom=True)
        if existing is not None:
            self.all_patterns = [saved if p.name == name else p for p in self.all_patterns]
        else:
            self.all_patterns = self.all_patterns + [saved]
        save_custom_patterns(self._store, self.all_patterns)

        # Same durations, so the running phase just restarts under the new entry
        self.current_pattern = saved
        self.is_editing = False
        if self.started and self._deadline is not None:
            now = self._clock()
            self._enter_phase(self.phase_index, now, now)
        return saved

    def request_delete_pattern(self, pattern: NamedBreathingPattern) -> PendingConfirmation:
        self._ensure_open()
        if not pattern.is_custom:
            raise ValueError(f"{pattern.name!r} is not a custom pattern")
        self.pending = PendingConfirmation(
            kind="delete",
            message=f'Are you sure you want to delete "{pattern.name}"?',
            target=pattern,
        )
        return self.pending

    def delete_pattern(self, pattern: NamedBreathingPattern):
        self._ensure_open()
        def is_target(p):
            return p.is_custom and p.name == pattern.name

        self.all_patterns = [p for p in self.all_patterns if not is_target(p)]
        save_custom_patterns(self._store, self.all_patterns)
        if is_target(self.current_pattern):
            self.current_pattern = DEFAULT_PATTERNS[0]
            self._restart()

    def resolve_pending(self, accepted: bool, value: Optional[str] = None):
        pending, self.pending = self.pending, None
        if pending is None or not accepted:
            return None
        if pending.kind == "save":
            return self.save_pattern(value)
        if pending.kind == "delete":
            self.delete_pattern(pending.target)
            return pending.target
        raise ValueError(f"unknown confirmation kind {pending.kind!r}")
