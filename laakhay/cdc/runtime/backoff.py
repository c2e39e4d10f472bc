"""Backoff sequences used by the rate limit policies."""

from __future__ import annotations

import random

from ..core.config import (
    DEFAULT_BACKOFF_EXPONENT,
    DEFAULT_MAX_DELAY,
    DEFAULT_RANDOMIZATION_FACTOR,
)


class BackoffSequence:
    """Stateful generator of increasing delays, resettable to its minimum.

    The n-th delay is ``initial * exponent**n`` capped at ``max_backoff``,
    randomized by +/- ``randomization_factor`` of its value.
    """

    def __init__(
        self,
        initial_backoff: float,
        max_backoff: float = DEFAULT_MAX_DELAY,
        *,
        exponent: float = DEFAULT_BACKOFF_EXPONENT,
        randomization_factor: float = DEFAULT_RANDOMIZATION_FACTOR,
        rng: random.Random | None = None,
    ) -> None:
        if initial_backoff <= 0:
            raise ValueError("initial_backoff must be positive")
        if max_backoff < initial_backoff:
            raise ValueError("max_backoff must be >= initial_backoff")
        if exponent < 1:
            raise ValueError("exponent must be >= 1")
        if not 0 <= randomization_factor <= 1:
            raise ValueError("randomization_factor must be in [0, 1]")
        self._initial = initial_backoff
        self._max = max_backoff
        self._exponent = exponent
        self._randomization = randomization_factor
        self._rng = rng or random.Random()
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Number of delays handed out since the last reset."""
        return self._attempt

    def next_backoff(self) -> float:
        """Next delay in seconds."""
        current = min(self._initial * self._exponent**self._attempt, self._max)
        self._attempt += 1
        if self._randomization == 0:
            return current
        offset = (self._rng.random() * 2 - 1) * self._randomization * current
        return max(0.0, current + offset)

    def reset(self) -> None:
        self._attempt = 0
