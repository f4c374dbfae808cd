"""Constant-product invariant checks.

Swap legs must leave pool_yes * pool_no unchanged up to the pool rounding
(recomputed pools round up, so k may only creep upward by a hair). Fees and
minted shares never touch the pools.
"""

import logging
from decimal import Decimal

from src.pm_amm.domain.models import PoolState

logger = logging.getLogger(__name__)


def k_drift(k_reference: Decimal, pools: PoolState) -> Decimal:
    """Relative drift |k_now - k_ref| / k_ref."""
    if k_reference <= 0:
        raise AssertionError(f"reference k={k_reference} is not positive")
    return abs(pools.k - k_reference) / k_reference


def verify_constant_product(
    pools_before: PoolState, pools_after: PoolState, tolerance: Decimal
) -> None:
    """Raise AssertionError if a trade moved k beyond tolerance or emptied a pool."""
    if pools_after.pool_yes <= 0 or pools_after.pool_no <= 0:
        raise AssertionError(
            f"pools must stay positive, got "
            f"yes={pools_after.pool_yes} no={pools_after.pool_no}"
        )
    drift = k_drift(pools_before.k, pools_after)
    if drift > tolerance:
        raise AssertionError(
            f"constant product moved: k {pools_before.k} -> {pools_after.k} "
            f"(drift {drift} > tolerance {tolerance})"
        )
    logger.debug("Invariants OK: k=%s drift=%s", pools_after.k, drift)


def verify_seed_invariant(
    market_id: str, seed_liquidity: Decimal, pools: PoolState, tolerance: Decimal
) -> str | None:
    """Audit an open market against its seed k. Returns a violation string or None."""
    drift = k_drift(seed_liquidity * seed_liquidity, pools)
    if drift > tolerance:
        return (
            f"k drift on {market_id}: pools ({pools.pool_yes}, {pools.pool_no}) "
            f"drifted {drift} from seed k={seed_liquidity * seed_liquidity}"
        )
    return None
