from decimal import Decimal

import pytest

from src.pm_amm.domain.models import PoolState
from src.pm_clearing.domain.invariants import (
    k_drift,
    verify_constant_product,
    verify_seed_invariant,
)

TOL = Decimal("0.000001")


def _pools(yes: str, no: str) -> PoolState:
    return PoolState(pool_yes=Decimal(yes), pool_no=Decimal(no))


class TestConstantProduct:
    def test_passes_when_k_unchanged(self) -> None:
        verify_constant_product(_pools("1000", "1000"), _pools("800", "1250"), TOL)

    def test_passes_on_rounding_creep(self) -> None:
        verify_constant_product(_pools("1000", "1000"), _pools("800.000001", "1250"), TOL)

    def test_fails_on_drift(self) -> None:
        with pytest.raises(AssertionError, match="constant product moved"):
            verify_constant_product(_pools("1000", "1000"), _pools("800", "1200"), TOL)

    def test_fails_on_empty_pool(self) -> None:
        with pytest.raises(AssertionError, match="pools must stay positive"):
            verify_constant_product(_pools("1000", "1000"), _pools("0", "1000"), TOL)


class TestKDrift:
    def test_relative(self) -> None:
        assert k_drift(Decimal("100"), _pools("10", "11")) == Decimal("0.1")

    def test_non_positive_reference(self) -> None:
        with pytest.raises(AssertionError):
            k_drift(Decimal("0"), _pools("1", "1"))


class TestSeedInvariant:
    def test_clean(self) -> None:
        assert verify_seed_invariant("m", Decimal("1000"), _pools("500", "2000"), TOL) is None

    def test_violation_names_market(self) -> None:
        message = verify_seed_invariant("mkt-7", Decimal("1000"), _pools("500", "1000"), TOL)
        assert message is not None
        assert "mkt-7" in message
