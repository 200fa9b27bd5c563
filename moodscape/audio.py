import io
import logging
import time
import wave

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
ATTACK_SECONDS = 0.01
SILENCE = 0.00001

RUNNING = "running"
SUSPENDED = "suspended"
CLOSED = "closed"


def synthesize_tone(frequency, volume, duration, sample_rate=SAMPLE_RATE):
    """Sine wave with a 10ms linear attack and an exponential decay to near silence."""
    n = max(int(round(duration * sample_rate)), 1)
    t = np.arange(n) / sample_rate
    if volume <= 0:
        return np.zeros(n)

    envelope = np.empty(n)
    attack = min(ATTACK_SECONDS, duration)
    rising = t < attack
    envelope[rising] = volume * t[rising] / attack if attack > 0 else volume
    decay_span = duration - attack
    if decay_span > 0:
        progress = (t[~rising] - attack) / decay_span
        envelope[~rising] = volume * (SILENCE / volume) ** progress
    else:
        envelope[~rising] = volume
    return np.sin(2 * np.pi * frequency * t) * envelope


def to_wav_bytes(samples, sample_rate=SAMPLE_RATE) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes((np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16).tobytes())
    return buffer.getvalue()


class Tone:
    """A single scheduled tone. Lives for `duration` seconds, then is stopped."""

    def __init__(self, frequency, volume, duration, started_at, sample_rate=SAMPLE_RATE):
        self.frequency = frequency
        self.volume = volume
        self.duration = duration
        self.started_at = started_at
        self.stop_at = started_at + duration
        self.samples = synthesize_tone(frequency, volume, duration, sample_rate)
        self.sample_rate = sample_rate
        self.stopped = False

    def to_wav(self) -> bytes:
        return to_wav_bytes(self.samples, self.sample_rate)

    def stop(self):
        self.stopped = True


class ToneContext:
    """Audio output owned by exactly one breathing session.

    `sink` receives the WAV bytes of every tone played; without a sink tones
    are only tracked, which is what the tests rely on.
    """

    def __init__(self, sink=None, clock=time.monotonic, state=RUNNING):
        self.sink = sink
        self.state = state
        self._clock = clock
        self._tones = []

    @property
    def active_tones(self):
        self.reap()
        return list(self._tones)

    def reap(self):
        """Stop every tone whose lifetime has elapsed."""
        if self.state != CLOSED:
            self._reap(self._clock())

    def attach(self, sink):
        self.sink = sink

    def resume(self):
        if self.state == SUSPENDED:
            self.state = RUNNING

    def play_sound(self, frequency, volume, duration):
        if self.state == CLOSED:
            return None
        if self.state == SUSPENDED:
            self.resume()

        now = self._clock()
        self._reap(now)
        tone = Tone(frequency, volume, duration, now)
        self._tones.append(tone)
        if self.sink is not None:
            try:
                self.sink(tone.to_wav())
            except Exception:
                logger.warning("Tone sink failed, continuing without sound", exc_info=True)
        return tone

    def _reap(self, now):
        for tone in self._tones:
            if now >= tone.stop_at:
                tone.stop()
        self._tones = [tone for tone in self._tones if not tone.stopped]

    def close(self):
        if self.state == CLOSED:
            return
        for tone in self._tones:
            tone.stop()
        self._tones = []
        self.state = CLOSED
        self.sink = None
