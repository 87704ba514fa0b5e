"""Tests for random sources."""

import logging
from unittest.mock import MagicMock

import pytest

from src.dice.errors import RandomSourceUnavailableError
from src.dice.random_source import (
    CryptoSource,
    FailoverSource,
    FallbackSource,
    RandomSource,
    create_default_source,
)
from src.dice.types import QualityLevel


def _failing_entropy(size: int) -> bytes:
    raise NotImplementedError("no entropy on this platform")


class TestCryptoSource:
    """Tests for the CSPRNG-backed source."""

    def test_quality_is_cryptographic(self):
        """Test quality level."""
        assert CryptoSource().quality_level() == QualityLevel.CRYPTOGRAPHIC

    def test_values_in_range(self):
        """Test draws stay within [1, max]."""
        source = CryptoSource()
        for sides in (1, 2, 3, 6, 7, 20, 100, 1000):
            for _ in range(50):
                assert 1 <= source.next_int(sides) <= sides

    def test_d1_needs_no_entropy(self):
        """Test that a one-sided die always returns 1."""
        entropy = MagicMock(return_value=b"\x00")
        source = CryptoSource(entropy=entropy)
        entropy.reset_mock()
        assert source.next_int(1) == 1
        entropy.assert_not_called()

    def test_rejection_sampling_skips_out_of_range(self):
        """Test that masked candidates >= max are rejected, not wrapped."""
        # d6 uses 3 bits: 7 and 6 are rejected, 2 maps to face 3
        entropy = MagicMock(side_effect=[b"\x00", b"\x07", b"\x06", b"\x02"])
        source = CryptoSource(entropy=entropy)
        assert source.next_int(6) == 3
        assert entropy.call_count == 4

    def test_mask_uses_needed_bits_only(self):
        """Test that high bits outside the mask are ignored."""
        # 0xF9 masked to 3 bits is 1, i.e. face 2
        source = CryptoSource(entropy=MagicMock(side_effect=[b"\x00", b"\xf9"]))
        assert source.next_int(6) == 2

    def test_multi_byte_range(self):
        """Test that d1000 reads two bytes."""
        entropy = MagicMock(side_effect=[b"\x00", b"\x01\xf3"])
        source = CryptoSource(entropy=entropy)
        assert source.next_int(1000) == 500
        entropy.assert_called_with(2)

    def test_unavailable_at_construction(self):
        """Test that a failing platform API is reported."""
        with pytest.raises(RandomSourceUnavailableError, match="no entropy"):
            CryptoSource(entropy=_failing_entropy)

    def test_failure_during_draw(self):
        """Test that a later OSError becomes RandomSourceUnavailableError."""
        entropy = MagicMock(side_effect=[b"\x00", OSError("device gone")])
        source = CryptoSource(entropy=entropy)
        with pytest.raises(RandomSourceUnavailableError):
            source.next_int(20)

    def test_short_read_is_unavailable(self):
        """Test that too few bytes count as a failure."""
        with pytest.raises(RandomSourceUnavailableError):
            CryptoSource(entropy=lambda size: b"")

    def test_invalid_range(self):
        """Test that max below 1 is rejected."""
        with pytest.raises(ValueError):
            CryptoSource().next_int(0)

    def test_satisfies_protocol(self):
        """Test structural typing."""
        assert isinstance(CryptoSource(), RandomSource)


class TestFallbackSource:
    """Tests for the seedable pseudorandom source."""

    def test_quality_is_pseudorandom(self):
        """Test quality level."""
        assert FallbackSource().quality_level() == QualityLevel.PSEUDORANDOM

    def test_same_seed_same_sequence(self):
        """Test seeding makes draws reproducible."""
        first = FallbackSource(seed=42)
        second = FallbackSource(seed=42)
        assert [first.next_int(20) for _ in range(20)] == [second.next_int(20) for _ in range(20)]

    def test_values_in_range(self):
        """Test draws stay within [1, max]."""
        source = FallbackSource(seed=7)
        assert all(1 <= source.next_int(6) <= 6 for _ in range(500))

    def test_invalid_range(self):
        """Test that max below 1 is rejected."""
        with pytest.raises(ValueError):
            FallbackSource().next_int(-3)

    def test_satisfies_protocol(self):
        """Test structural typing."""
        assert isinstance(FallbackSource(), RandomSource)


class TestFailoverSource:
    """Tests for automatic fallback on source failure."""

    def _broken_crypto(self) -> CryptoSource:
        return CryptoSource(entropy=MagicMock(side_effect=[b"\x00", OSError("device gone")]))

    def test_passes_through_when_healthy(self):
        """Test that a working source is used unchanged."""
        source = FailoverSource(FallbackSource(seed=3))
        assert source.quality_level() == QualityLevel.PSEUDORANDOM
        assert not source.failed_over

    def test_switches_on_failure(self):
        """Test that a failing draw is served by the fallback."""
        on_failover = MagicMock()
        source = FailoverSource(self._broken_crypto(), fallback_seed=1, on_failover=on_failover)
        assert source.quality_level() == QualityLevel.CRYPTOGRAPHIC

        value = source.next_int(20)

        assert 1 <= value <= 20
        assert source.failed_over
        assert source.quality_level() == QualityLevel.PSEUDORANDOM
        on_failover.assert_called_once()
        assert "device gone" in on_failover.call_args.args[0]

    def test_diagnostic_emitted_once(self):
        """Test that later draws do not repeat the diagnostic."""
        on_failover = MagicMock()
        source = FailoverSource(self._broken_crypto(), on_failover=on_failover)
        for _ in range(10):
            source.next_int(6)
        on_failover.assert_called_once()

    def test_logs_warning_without_callback(self, caplog):
        """Test the default diagnostic is a logged warning."""
        source = FailoverSource(self._broken_crypto())
        with caplog.at_level(logging.WARNING, logger="src.dice.random_source"):
            source.next_int(6)
        assert "pseudorandom fallback" in caplog.text

    def test_fallback_seed_is_used(self):
        """Test the fallback is seeded as configured."""
        source = FailoverSource(self._broken_crypto(), fallback_seed=99)
        reference = FallbackSource(seed=99)
        assert [source.next_int(20) for _ in range(5)] == [reference.next_int(20) for _ in range(5)]


class TestCreateDefaultSource:
    """Tests for default source selection."""

    def test_prefers_crypto(self):
        """Test the CSPRNG is chosen when available."""
        assert create_default_source().quality_level() == QualityLevel.CRYPTOGRAPHIC

    def test_opt_out_of_crypto(self):
        """Test prefer_crypto=False gives a seeded fallback."""
        source = create_default_source(prefer_crypto=False, seed=5)
        assert isinstance(source, FallbackSource)
        assert source.seed == 5

    def test_falls_back_when_unavailable(self, monkeypatch):
        """Test construction-time unavailability uses the fallback."""
        monkeypatch.setattr("src.dice.random_source.os.urandom", _failing_entropy)
        on_unavailable = MagicMock()

        source = create_default_source(on_unavailable=on_unavailable)

        assert source.quality_level() == QualityLevel.PSEUDORANDOM
        on_unavailable.assert_called_once()
