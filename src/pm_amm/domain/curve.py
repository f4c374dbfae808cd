"""Constant-product price curve for a binary YES/NO market.

Pure functions over a PoolState. Nothing here touches storage.

Price of a side is set by the *opposite* pool:
    price(YES) = pool_no  / (pool_yes + pool_no)
    price(NO)  = pool_yes / (pool_yes + pool_no)

Buys are two legs. The mint leg turns each net dollar into one share at par
without touching the pools. The swap leg injects the net dollars into the
opposite pool and pulls same-side shares out along x * y = k.

Sells solve for how many of the sold shares must be swapped into the pool so
that the opposite shares received pair up with the remainder; each pair is
burned for $1.

Rounding:
    recomputed pool     -> up to 6 places (the pool never loses value)
    payout before fee   -> down to cents
    reported prices     -> 6 places
"""

from decimal import Context, Decimal, localcontext

from src.pm_amm.domain.models import BuyQuote, PoolState, SellQuote
from src.pm_clearing.domain.fee import calc_fee
from src.pm_common.decimal_utils import CENT_QUANT, quantize_down, quantize_up
from src.pm_common.enums import OrderMode, Side
from src.pm_common.errors import LiquidityExceededError, SlippageExceededError, ValidationError

_CURVE_CONTEXT = Context(prec=50)
PRICE_QUANT = Decimal("0.000001")
_IMPACT_QUANT = Decimal("0.0001")


def price_of(pools: PoolState, side: Side) -> Decimal:
    """Implied probability of `side`, full precision."""
    if pools.pool_yes <= 0 or pools.pool_no <= 0:
        raise LiquidityExceededError("pool is empty")
    with localcontext(_CURVE_CONTEXT):
        return pools.pool_for(side.opposite) / pools.total


def current_price(pools: PoolState, side: Side) -> Decimal:
    """Reported price, rounded to 6 places."""
    return price_of(pools, side).quantize(PRICE_QUANT)


def _impact(current: Decimal, final: Decimal) -> Decimal:
    if current == 0:
        return Decimal(0)
    return ((final - current) / current * 100).quantize(_IMPACT_QUANT)


def quote_buy(
    pools: PoolState, side: Side, investment: Decimal, fee_rate: Decimal
) -> BuyQuote:
    if investment <= 0:
        raise ValidationError(f"Investment must be positive, got {investment}")

    with localcontext(_CURVE_CONTEXT):
        fee = calc_fee(investment, fee_rate)
        net = investment - fee
        k = pools.k

        same = pools.pool_for(side)
        opposite = pools.pool_for(side.opposite)
        new_opposite = opposite + net
        new_same = quantize_up(k / new_opposite)
        swap_yield = same - new_same
        total_shares = net + swap_yield
        if total_shares <= 0:
            raise LiquidityExceededError(f"investment {investment} yields no shares")

        after = PoolState.from_sides(side, same=new_same, opposite=new_opposite)
        before_price = current_price(pools, side)
        final = current_price(after, side)

        return BuyQuote(
            side=side,
            investment=investment,
            fee=fee,
            net_investment=net,
            minted_shares=net,
            swap_shares=swap_yield,
            total_shares=total_shares,
            avg_price=(investment / total_shares).quantize(PRICE_QUANT),
            current_price=before_price,
            final_price=final,
            price_impact_pct=_impact(before_price, final),
            pools_before=pools,
            pools_after=after,
        )


def solve_swap_amount(pools: PoolState, side: Side, shares: Decimal) -> Decimal:
    """Root of x^2 + (Y+N-s)x + (Y(N-s) - k) = 0 taken with the + branch.

    Y is the sold side's pool, N the opposite pool, s the shares sold.
    """
    with localcontext(_CURVE_CONTEXT):
        y = pools.pool_for(side)
        n = pools.pool_for(side.opposite)
        k = y * n
        b = y + n - shares
        c = y * (n - shares) - k
        disc = b * b - 4 * c
        if disc < 0:
            raise LiquidityExceededError(f"cannot sell {shares} shares against current pools")
        swap = (-b + disc.sqrt()) / 2
        if swap < 0 or swap > shares:
            raise LiquidityExceededError(f"cannot sell {shares} shares against current pools")
        return swap


def quote_sell(
    pools: PoolState, side: Side, shares: Decimal, fee_rate: Decimal
) -> SellQuote:
    if shares <= 0:
        raise ValidationError(f"Shares to sell must be positive, got {shares}")

    with localcontext(_CURVE_CONTEXT):
        swap = solve_swap_amount(pools, side, shares)
        payout_before_fee = quantize_down(shares - swap, CENT_QUANT)
        fee = calc_fee(payout_before_fee, fee_rate)
        payout = payout_before_fee - fee
        if payout <= 0:
            raise LiquidityExceededError(f"selling {shares} shares pays out nothing")

        # Whatever the cent rounding held back stays in the pool as swapped shares
        effective_swap = shares - payout_before_fee
        k = pools.k
        new_same = pools.pool_for(side) + effective_swap
        new_opposite = quantize_up(k / new_same)
        after = PoolState.from_sides(side, same=new_same, opposite=new_opposite)

        before_price = current_price(pools, side)
        final = current_price(after, side)

        return SellQuote(
            side=side,
            shares_sold=shares,
            swap_amount=effective_swap,
            payout_before_fee=payout_before_fee,
            fee=fee,
            payout=payout,
            avg_price=(payout / shares).quantize(PRICE_QUANT),
            current_price=before_price,
            final_price=final,
            price_impact_pct=_impact(before_price, final),
            pools_before=pools,
            pools_after=after,
        )


def check_slippage(quote: BuyQuote | SellQuote, bound: Decimal) -> None:
    """Buyers cap the final price from above, sellers from below."""
    if quote.mode is OrderMode.BUY:
        if quote.final_price > bound:
            raise SlippageExceededError(quote.final_price, bound, OrderMode.BUY.value)
    elif quote.final_price < bound:
        raise SlippageExceededError(quote.final_price, bound, OrderMode.SELL.value)


def slippage_bound(pools: PoolState, side: Side, mode: OrderMode, tolerance_pct: Decimal) -> Decimal:
    """Bound a client would send for a given tolerance: current price +/- tolerance%."""
    price = current_price(pools, side)
    factor = tolerance_pct / 100
    if mode is OrderMode.BUY:
        return (price * (1 + factor)).quantize(PRICE_QUANT)
    return (price * (1 - factor)).quantize(PRICE_QUANT)
