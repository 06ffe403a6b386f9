"""Seeded, deterministic noise for measurement perturbation.

The raw generator is Mulberry32 over a 32-bit state. Every public operation
that processes a whole buffer first resets the generator, so measuring the
same buffer twice yields the same perturbation.
"""

from __future__ import annotations

import logging
import math
import os
import random
from collections.abc import MutableSequence
from typing import Any

from masque.models import NoiseDistribution, NoiseLevel, NoiseSettings

logger = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF
MULBERRY_INCREMENT = 0x6D2B79F5

LEVEL_SCALES: dict[NoiseLevel, float] = {
    NoiseLevel.OFF: 0.0,
    NoiseLevel.LOW: 0.5,
    NoiseLevel.MEDIUM: 2.0,
    NoiseLevel.HIGH: 5.0,
}

AUDIO_ATTENUATION = 1e-4
CLIENT_RECTS_ATTENUATION = 1e-3
GAUSSIAN_FLOOR = 1e-10


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK32


def _round_byte(value: float) -> int:
    """Round half up and clamp into the byte range."""
    return max(0, min(255, math.floor(value + 0.5)))


def _coerce_seed(seed: Any) -> int:
    if isinstance(seed, bool) or not isinstance(seed, (int, float)):
        raise ValueError(f"Seed must be a finite number, got {seed!r}")
    if not math.isfinite(seed):
        raise ValueError(f"Seed must be a finite number, got {seed!r}")
    return int(seed) & MASK32


def _coerce_enum(enum_type: type, value: Any, label: str) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValueError(f"Invalid noise {label}: {value!r}. Must be one of: {allowed}") from None


class NoiseEngine:
    """Deterministic noise source with configurable level and distribution.

    Two engines with the same seed, level and distribution produce the same
    sequence of values, both across instances and across :meth:`reset`.
    """

    def __init__(
        self,
        seed: int | None = None,
        level: NoiseLevel | str = NoiseLevel.MEDIUM,
        distribution: NoiseDistribution | str = NoiseDistribution.UNIFORM,
    ) -> None:
        """Initialize the engine.

        Args:
            seed: 32-bit seed. A secure random seed is generated when omitted;
                larger integers are reduced modulo 2**32.
            level: One of ``off``, ``low``, ``medium`` or ``high``.
            distribution: ``uniform`` or ``gaussian``.

        Raises:
            ValueError: On a non-numeric or non-finite seed, or an unknown
                level or distribution.
        """
        if seed is None:
            seed = self.generate_secure_seed()
        self.seed = _coerce_seed(seed)
        self.level: NoiseLevel = _coerce_enum(NoiseLevel, level, "level")
        self.distribution: NoiseDistribution = _coerce_enum(
            NoiseDistribution, distribution, "distribution"
        )
        self._state = self.seed

    def __repr__(self) -> str:
        return (
            f"NoiseEngine(seed={self.seed}, level={self.level.value!r}, "
            f"distribution={self.distribution.value!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NoiseEngine):
            return NotImplemented
        return (
            self.seed == other.seed
            and self.level == other.level
            and self.distribution == other.distribution
        )

    def __hash__(self) -> int:
        return hash((self.seed, self.level, self.distribution))

    @property
    def scale(self) -> float:
        """Amplitude multiplier for the configured level."""
        return LEVEL_SCALES[self.level]

    def _next(self) -> float:
        """Advance Mulberry32 once and return a float in [0, 1)."""
        self._state = (self._state + MULBERRY_INCREMENT) & MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / 2**32

    def reset(self) -> None:
        """Rewind the generator to the position implied by the seed."""
        self._state = self.seed

    def get_noise(self, index: int = 0) -> float:
        """Return the next noise value.

        The value depends only on the generator position; ``index`` is
        accepted for call-site symmetry with per-element consumers.
        """
        if self.level is NoiseLevel.OFF:
            return 0.0

        if self.distribution is NoiseDistribution.GAUSSIAN:
            u1 = max(self._next(), GAUSSIAN_FLOOR)
            u2 = self._next()
            noise = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        else:
            noise = self._next() * 2 - 1

        return noise * self.scale

    def apply_to_audio_data(self, buffer: MutableSequence[float]) -> MutableSequence[float]:
        """Add attenuated noise to every audio sample in place.

        Samples are signed floats, so nothing is clamped.
        """
        if self.level is NoiseLevel.OFF:
            return buffer

        self.reset()
        for i in range(len(buffer)):
            buffer[i] += self.get_noise(i) * AUDIO_ATTENUATION
        return buffer

    def apply_to_byte_data(self, buffer: MutableSequence[int]) -> MutableSequence[int]:
        """Add noise to every byte in place, rounding and clamping to [0, 255]."""
        if self.level is NoiseLevel.OFF:
            return buffer

        self.reset()
        for i in range(len(buffer)):
            buffer[i] = _round_byte(buffer[i] + self.get_noise(i))
        return buffer

    def apply_to_canvas_data(self, rgba: MutableSequence[int]) -> MutableSequence[int]:
        """Perturb RGBA pixel data in place, leaving the alpha channel alone.

        Each pixel draws one noise value that is added to its red, green and
        blue channels.
        """
        if self.level is NoiseLevel.OFF:
            return rgba

        self.reset()
        length = len(rgba)
        for i in range(0, length, 4):
            noise = self.get_noise(i)
            for channel in range(i, min(i + 3, length)):
                rgba[channel] = _round_byte(rgba[channel] + noise)
        return rgba

    def get_client_rects_noise(self, index: int = 0) -> float:
        """Return a sub-pixel offset for the element at ``index``.

        The generator is reset and advanced ``index`` times, so the result
        depends only on the seed, the level and ``index``.
        """
        if self.level is NoiseLevel.OFF:
            return 0.0

        self.reset()
        for _ in range(index):
            self._next()
        return (self._next() * 2 - 1) * self.scale * CLIENT_RECTS_ATTENUATION

    def with_options(
        self,
        level: NoiseLevel | str | None = None,
        distribution: NoiseDistribution | str | None = None,
    ) -> NoiseEngine:
        """Return a new engine with the same seed and updated options."""
        return NoiseEngine(
            self.seed,
            level=level or self.level,
            distribution=distribution or self.distribution,
        )

    def to_settings(self) -> NoiseSettings:
        """Return the engine configuration as a serializable model."""
        return NoiseSettings(seed=self.seed, level=self.level, distribution=self.distribution)

    @classmethod
    def from_settings(cls, settings: NoiseSettings | dict[str, Any]) -> NoiseEngine:
        """Build an engine from :meth:`to_settings` output or its dict form."""
        if not isinstance(settings, NoiseSettings):
            settings = NoiseSettings.model_validate(settings)
        return cls(settings.seed, level=settings.level, distribution=settings.distribution)

    @staticmethod
    def generate_secure_seed() -> int:
        """Return a 32-bit seed from the OS entropy source.

        Falls back to the non-cryptographic ``random`` module only when the
        platform provides no entropy source.
        """
        try:
            return int.from_bytes(os.urandom(4), "big")
        except NotImplementedError:
            logger.warning("No OS entropy source available, seeding noise from random")
            return random.getrandbits(32)
