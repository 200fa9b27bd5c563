"""
Unit Tests for Tone Generation
Tests for: envelope shape, WAV encoding, audio context lifecycle
"""
import io
import wave

import numpy as np
import pytest

from moodscape.audio import (
    CLOSED,
    RUNNING,
    SAMPLE_RATE,
    SUSPENDED,
    ToneContext,
    synthesize_tone,
    to_wav_bytes,
)


class TestSynthesizeTone:
    """Test the sine tone and its gain envelope"""

    def test_length_matches_duration(self):
        samples = synthesize_tone(600, 0.2, 0.2)

        assert len(samples) == int(0.2 * SAMPLE_RATE)

    def test_starts_silent_and_never_exceeds_volume(self):
        samples = synthesize_tone(600, 0.2, 0.2)

        assert samples[0] == 0
        assert np.max(np.abs(samples)) <= 0.2 + 1e-9

    def test_decays_to_near_silence(self):
        samples = synthesize_tone(400, 0.15, 0.15)
        tail = samples[-int(0.005 * SAMPLE_RATE):]

        assert np.max(np.abs(tail)) < 0.001

    def test_peak_is_near_end_of_attack(self):
        samples = synthesize_tone(600, 0.2, 0.2)
        attack_end = int(0.01 * SAMPLE_RATE)

        assert np.max(np.abs(samples[:attack_end + 50])) == pytest.approx(0.2, rel=0.05)

    def test_zero_volume_is_silence(self):
        assert not np.any(synthesize_tone(600, 0, 0.1))


class TestWavEncoding:
    """Test WAV wrapping"""

    def test_mono_16_bit(self):
        data = to_wav_bytes(synthesize_tone(600, 0.2, 0.2))

        with wave.open(io.BytesIO(data), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getframerate() == SAMPLE_RATE
            assert wf.getnframes() == int(0.2 * SAMPLE_RATE)


class TestToneContext:
    """Test the per-session audio context"""

    def test_play_sends_wav_to_sink(self, clock):
        played = []
        context = ToneContext(sink=played.append, clock=clock)

        tone = context.play_sound(600, 0.2, 0.2)

        assert tone is not None
        assert len(played) == 1
        assert played[0][:4] == b"RIFF"

    def test_suspended_context_resumes_before_playing(self, clock):
        context = ToneContext(clock=clock, state=SUSPENDED)

        context.play_sound(400, 0.15, 0.15)

        assert context.state == RUNNING
        assert len(context.active_tones) == 1

    def test_finished_tones_are_stopped(self, clock):
        context = ToneContext(clock=clock)
        first = context.play_sound(600, 0.2, 0.2)

        clock.advance(1)
        context.play_sound(400, 0.15, 0.15)

        assert first.stopped
        assert len(context.active_tones) == 1

    def test_tone_stops_when_lifetime_ends_without_another_tone(self, clock):
        context = ToneContext(clock=clock)
        tone = context.play_sound(600, 0.2, 0.2)

        clock.advance(0.1)
        assert context.active_tones == [tone]
        assert not tone.stopped

        clock.advance(30)
        assert context.active_tones == []
        assert tone.stopped

    def test_close_stops_tones_and_disables_playback(self, clock):
        context = ToneContext(clock=clock)
        tone = context.play_sound(600, 0.2, 0.2)

        context.close()
        context.close()

        assert tone.stopped
        assert context.state == CLOSED
        assert context.play_sound(600, 0.2, 0.2) is None

    def test_failing_sink_does_not_raise(self, clock):
        def sink(_):
            raise RuntimeError("no speakers")

        context = ToneContext(sink=sink, clock=clock)

        assert context.play_sound(600, 0.2, 0.2) is not None
