"""
Unit Tests for Breathing Patterns
Tests for: built-in lookup, AI-derived patterns, wire format validation
"""
import pytest

from moodscape.patterns import (
    BOX_BREATHING,
    DEEPER_CALM,
    DEFAULT_PATTERNS,
    RELAXING_BREATH,
    BreathingPattern,
    NamedBreathingPattern,
    find_or_create_named_pattern,
    is_builtin,
)


class TestFindOrCreateNamedPattern:
    """Test resolving numeric patterns to named ones"""

    def test_box_pattern_returns_builtin(self):
        """Test 4-4-4-4 resolves to the Box Breathing entry itself"""
        result = find_or_create_named_pattern(BreathingPattern(4, 4, 4, 4), "X")

        assert result is BOX_BREATHING
        assert result.name == "Box Breathing"

    @pytest.mark.parametrize("builtin", DEFAULT_PATTERNS, ids=lambda p: p.name)
    def test_every_builtin_matches_by_fields(self, builtin):
        """Test an equal copy of a built-in's durations finds that built-in"""
        copy = BreathingPattern(**builtin.pattern.to_dict())

        assert find_or_create_named_pattern(copy, "ignored") is builtin

    def test_unknown_pattern_creates_session_entry(self):
        """Test a non-matching pattern becomes a new non-custom entry"""
        pattern = BreathingPattern(inhale=5, hold=1, exhale=5, postExhaleHold=1)

        result = find_or_create_named_pattern(pattern, "Custom AI Pattern")

        assert result.name == "Custom AI Pattern"
        assert result.is_custom is False
        assert result.pattern == pattern
        assert result.description == "Your AI-suggested pattern."
        assert not is_builtin(result)

    def test_near_match_is_not_builtin(self):
        """Test that only an exact match on all four fields counts"""
        result = find_or_create_named_pattern(BreathingPattern(4, 7, 8, 1), "Almost Relax")

        assert result is not RELAXING_BREATH
        assert result.name == "Almost Relax"

    def test_is_deterministic(self):
        """Test repeated calls give equal results"""
        pattern = BreathingPattern(3, 0, 6, 0)

        assert find_or_create_named_pattern(pattern, "A") == find_or_create_named_pattern(pattern, "A")


class TestBuiltins:
    """Test the shipped pattern set"""

    def test_order_and_values(self):
        assert [p.name for p in DEFAULT_PATTERNS] == ["Box Breathing", "4-7-8 Relax", "Deeper Calm"]
        assert RELAXING_BREATH.pattern.to_dict() == {"inhale": 4, "hold": 7, "exhale": 8, "postExhaleHold": 0}
        assert DEEPER_CALM.pattern.duration("postExhaleHold") == 2

    def test_builtins_are_not_custom(self):
        assert not any(p.is_custom for p in DEFAULT_PATTERNS)


class TestWireFormat:
    """Test dict conversion used for persistence"""

    def test_to_dict_omits_missing_description(self):
        named = NamedBreathingPattern("Mine", BreathingPattern(1, 2, 3, 4), is_custom=True)

        assert named.to_dict() == {
            "name": "Mine",
            "pattern": {"inhale": 1, "hold": 2, "exhale": 3, "postExhaleHold": 4},
            "isCustom": True,
        }

    def test_from_dict_reads_camel_case(self):
        named = NamedBreathingPattern.from_dict({
            "name": "Mine",
            "description": "slow",
            "pattern": {"inhale": 6, "hold": 0, "exhale": 6, "postExhaleHold": 0},
            "isCustom": True,
        })

        assert named.is_custom is True
        assert named.description == "slow"
        assert named.pattern.exhale == 6

    @pytest.mark.parametrize("pattern", [
        {"inhale": 4, "hold": 4, "exhale": 4},
        {"inhale": -1, "hold": 4, "exhale": 4, "postExhaleHold": 4},
        {"inhale": "4", "hold": 4, "exhale": 4, "postExhaleHold": 4},
        {"inhale": True, "hold": 4, "exhale": 4, "postExhaleHold": 4},
        None,
    ])
    def test_from_dict_rejects_bad_durations(self, pattern):
        with pytest.raises(ValueError):
            NamedBreathingPattern.from_dict({"name": "Bad", "pattern": pattern, "isCustom": True})

    def test_from_dict_rejects_blank_name(self):
        with pytest.raises(ValueError):
            NamedBreathingPattern.from_dict({"name": "  ", "pattern": BOX_BREATHING.pattern.to_dict()})

    def test_with_phase_and_unknown_phase(self):
        pattern = BreathingPattern(4, 4, 4, 4).with_phase("hold", 0)

        assert pattern == BreathingPattern(4, 0, 4, 4)
        with pytest.raises(KeyError):
            pattern.duration("pause")
