"""Random sources for the dice engine.

Every die is drawn through a RandomSource, which yields uniform integers in
[1, max_inclusive]. Two implementations are provided:

- CryptoSource: backed by the operating system CSPRNG, with rejection
  sampling so die sizes that are not a power of two stay unbiased.
- FallbackSource: seedable Mersenne Twister (period 2**19937 - 1), used when
  the CSPRNG is unavailable.

FailoverSource wraps another source and switches to a FallbackSource the
first time the wrapped source reports it is unavailable.
"""

import logging
import os
import random
import threading
from typing import Callable, Protocol, runtime_checkable

from src.dice.errors import RandomSourceUnavailableError
from src.dice.types import QualityLevel

logger = logging.getLogger(__name__)


@runtime_checkable
class RandomSource(Protocol):
    """Protocol for random sources.

    Implement this protocol to inject a custom source, such as a
    fixed-sequence double for deterministic tests.
    """

    def next_int(self, max_inclusive: int) -> int:
        """Return a uniform integer in [1, max_inclusive]."""
        ...

    def quality_level(self) -> QualityLevel:
        """Return the fidelity of this source."""
        ...


def _check_range(max_inclusive: int) -> None:
    if max_inclusive < 1:
        raise ValueError(f"max_inclusive must be at least 1, got {max_inclusive}")


class CryptoSource:
    """Cryptographically secure source.

    Draws the fewest bytes that cover the range, masks them to the needed
    bit width, and rejects candidates outside the range.
    """

    def __init__(self, entropy: Callable[[int], bytes] | None = None) -> None:
        """Initialize and probe the entropy function.

        Args:
            entropy: Callable returning n random bytes. Defaults to os.urandom.

        Raises:
            RandomSourceUnavailableError: If the entropy function fails.
        """
        self._entropy = entropy or os.urandom
        self._read(1)

    def _read(self, size: int) -> bytes:
        try:
            data = self._entropy(size)
        except (OSError, NotImplementedError) as e:
            raise RandomSourceUnavailableError(f"System random source failed: {e}") from e
        if len(data) != size:
            raise RandomSourceUnavailableError(
                f"System random source returned {len(data)} bytes, expected {size}"
            )
        return data

    def next_int(self, max_inclusive: int) -> int:
        _check_range(max_inclusive)
        if max_inclusive == 1:
            return 1

        bits = (max_inclusive - 1).bit_length()
        size = (bits + 7) // 8
        mask = (1 << bits) - 1

        while True:
            candidate = int.from_bytes(self._read(size), "big") & mask
            if candidate < max_inclusive:
                return candidate + 1

    def quality_level(self) -> QualityLevel:
        return QualityLevel.CRYPTOGRAPHIC


class FallbackSource:
    """Seedable pseudorandom source."""

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._random = random.Random(seed)

    def next_int(self, max_inclusive: int) -> int:
        _check_range(max_inclusive)
        return self._random.randint(1, max_inclusive)

    def quality_level(self) -> QualityLevel:
        return QualityLevel.PSEUDORANDOM


class FailoverSource:
    """Source that falls back to a FallbackSource on the first failure.

    The draw that failed is served by the fallback, so callers never see
    RandomSourceUnavailableError.
    """

    def __init__(
        self,
        primary: RandomSource,
        fallback_seed: int | None = None,
        on_failover: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the failover wrapper.

        Args:
            primary: Source to use while it keeps working.
            fallback_seed: Seed for the fallback generator.
            on_failover: Called once with a diagnostic message on switch-over.
        """
        self._active = primary
        self._fallback_seed = fallback_seed
        self._on_failover = on_failover
        self.failed_over = False
        self._lock = threading.Lock()

    @property
    def active(self) -> RandomSource:
        return self._active

    def next_int(self, max_inclusive: int) -> int:
        source = self._active
        try:
            return source.next_int(max_inclusive)
        except RandomSourceUnavailableError as e:
            with self._lock:
                # Another thread may already have switched sources
                if self._active is source:
                    if self.failed_over:
                        raise
                    self._switch(str(e))
            return self._active.next_int(max_inclusive)

    def quality_level(self) -> QualityLevel:
        return self._active.quality_level()

    def _switch(self, reason: str) -> None:
        self._active = FallbackSource(self._fallback_seed)
        self.failed_over = True
        message = f"Random source failed ({reason}); using pseudorandom fallback"
        if self._on_failover is not None:
            self._on_failover(message)
        else:
            logger.warning(message)


def create_default_source(
    prefer_crypto: bool = True,
    seed: int | None = None,
    on_unavailable: Callable[[str], None] | None = None,
) -> RandomSource:
    """Build the best available source.

    Args:
        prefer_crypto: Try the CSPRNG first. When False, always use the fallback.
        seed: Seed for the fallback generator.
        on_unavailable: Called with a diagnostic if the CSPRNG cannot be used.

    Returns:
        CryptoSource if available and preferred, otherwise FallbackSource.
    """
    if prefer_crypto:
        try:
            return CryptoSource()
        except RandomSourceUnavailableError as e:
            message = f"Cryptographic random source unavailable ({e}); using pseudorandom fallback"
            if on_unavailable is not None:
                on_unavailable(message)
            else:
                logger.warning(message)

    logger.debug(f"Using pseudorandom fallback source (seed={seed})")
    return FallbackSource(seed)
