"""
Specmock Pattern Synthesizer

Builds strings that match a contract ``pattern`` constraint using rstr's
xeger, driven by the generator's own random instance so seeded requests stay
reproducible.
"""

import random
import re
from typing import Optional

from rstr import Rstr


class PatternError(ValueError):
    """Pattern cannot be parsed or uses unsupported syntax."""


class PatternSynthesizer:
    """
    Generate strings matching a regular expression.

    Example:
        synth = PatternSynthesizer(random.Random(42))
        value = synth.generate(r'^[A-Z]{3}-\\d{4}$')
    """

    def __init__(self, rng: random.Random):
        self.rng = rng
        self._rstr = Rstr(_random=rng)

    def generate(self, pattern: str) -> str:
        """
        Generate one string matching ``pattern``.

        Raises:
            PatternError: If the pattern is invalid or unsupported
        """
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise PatternError(f"Invalid pattern {pattern!r}: {e}") from e

        try:
            return self._rstr.xeger(compiled)
        except (KeyError, IndexError, ValueError) as e:
            raise PatternError(f"Unsupported pattern {pattern!r}: {e}") from e


def synthesize(pattern: str, rng: Optional[random.Random] = None) -> str:
    """Convenience wrapper around PatternSynthesizer."""
    return PatternSynthesizer(rng or random.Random()).generate(pattern)
