"""
Tests for Specmock Pattern Synthesizer

Generated strings must match the pattern they were built from.
"""

import random
import re

import pytest

from specmock.mock.patterns import PatternError, PatternSynthesizer, synthesize


@pytest.fixture
def synth():
    return PatternSynthesizer(random.Random(7))


class TestPatternSynthesizer:
    """Test PatternSynthesizer."""

    @pytest.mark.parametrize('pattern', [
        r'^[A-Z]{2}-[0-9]{4}$',
        r'^\d{3}-\d{2}-\d{4}$',
        r'^[a-z]+@[a-z]+\.(com|org|net)$',
        r'^\w{5,8}$',
        r'^(abc|xyz)?[0-9]*$',
        r'^v\d+\.\d+\.\d+$',
        r'^[A-F0-9]{8}-[A-F0-9]{4}$',
    ])
    def test_generated_value_matches(self, synth, pattern):
        """Test values match their pattern across many draws."""
        for _ in range(50):
            value = synth.generate(pattern)
            assert re.fullmatch(pattern.lstrip('^').rstrip('$'), value), (pattern, value)

    def test_unanchored_pattern(self, synth):
        value = synth.generate(r'[A-Z]{3}')
        assert re.fullmatch(r'[A-Z]{3}', value)

    def test_invalid_pattern(self, synth):
        with pytest.raises(PatternError):
            synth.generate('(unclosed')

    def test_pattern_error_is_value_error(self):
        assert issubclass(PatternError, ValueError)

    def test_seeded_reproducibility(self):
        first = PatternSynthesizer(random.Random(3)).generate(r'[a-z]{12}')
        second = PatternSynthesizer(random.Random(3)).generate(r'[a-z]{12}')

        assert first == second

    def test_synthesize_helper(self):
        assert re.fullmatch(r'\d{6}', synthesize(r'^\d{6}$', random.Random(0)))
