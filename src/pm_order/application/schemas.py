# src/pm_order/application/schemas.py
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from src.pm_amm.domain.curve import slippage_bound as bound_for_tolerance
from src.pm_amm.domain.models import BuyQuote, SellQuote
from src.pm_common.decimal_utils import money_to_display, price_to_cents_display
from src.pm_order.domain.models import OrderReceipt


class PlaceOrderRequest(BaseModel):
    market_id: str = Field(min_length=1, max_length=64)
    side: Literal["YES", "NO"]
    mode: Literal["BUY", "SELL"]
    amount: Decimal = Field(description="BUY: dollars to invest; SELL: shares to sell")
    slippage_bound: Decimal = Field(
        description="BUY: highest acceptable final price; SELL: lowest acceptable final price"
    )

    @field_validator("market_id")
    @classmethod
    def no_whitespace(cls, v: str) -> str:
        if v != v.strip() or " " in v:
            raise ValueError("market_id must not contain whitespace")
        return v


class PlaceOrderResponse(BaseModel):
    market_id: str
    side: str
    mode: str
    shares: Decimal
    cash: Decimal
    cash_display: str
    fee: Decimal
    avg_price: Decimal
    final_price: Decimal
    final_price_display: str
    price_impact_pct: Decimal
    remaining_quota: int
    balance: Decimal
    position_count: Decimal
    transaction_id: int | None = None

    @classmethod
    def from_receipt(cls, receipt: OrderReceipt) -> "PlaceOrderResponse":
        return cls(
            market_id=receipt.market_id,
            side=receipt.side,
            mode=receipt.mode,
            shares=receipt.shares,
            cash=receipt.cash,
            cash_display=money_to_display(receipt.cash),
            fee=receipt.fee,
            avg_price=receipt.avg_price,
            final_price=receipt.final_price,
            final_price_display=price_to_cents_display(receipt.final_price),
            price_impact_pct=receipt.price_impact_pct,
            remaining_quota=receipt.remaining_quota,
            balance=receipt.balance,
            position_count=receipt.position_count,
            transaction_id=receipt.transaction_id,
        )


class QuoteResponse(BaseModel):
    """Preview of a BUY or SELL. `shares` is received on BUY and sold on SELL."""

    market_id: str
    side: str
    mode: str
    amount: Decimal
    shares: Decimal
    cash: Decimal  # BUY: investment incl. fee; SELL: payout after fee
    fee: Decimal
    avg_price: Decimal
    current_price: Decimal
    final_price: Decimal
    price_impact_pct: Decimal
    minted_shares: Decimal | None = None
    swap_shares: Decimal | None = None
    payout_before_fee: Decimal | None = None
    # Bound to send with the order for the requested tolerance
    slippage_bound: Decimal | None = None

    @classmethod
    def from_quote(
        cls,
        market_id: str,
        quote: BuyQuote | SellQuote,
        tolerance_pct: Decimal | None = None,
    ) -> "QuoteResponse":
        bound = (
            bound_for_tolerance(quote.pools_before, quote.side, quote.mode, tolerance_pct)
            if tolerance_pct is not None
            else None
        )
        common = {
            "market_id": market_id,
            "side": quote.side.value,
            "mode": quote.mode.value,
            "fee": quote.fee,
            "avg_price": quote.avg_price,
            "current_price": quote.current_price,
            "final_price": quote.final_price,
            "price_impact_pct": quote.price_impact_pct,
            "slippage_bound": bound,
        }
        if isinstance(quote, BuyQuote):
            return cls(
                **common,
                amount=quote.investment,
                shares=quote.total_shares,
                cash=quote.investment,
                minted_shares=quote.minted_shares,
                swap_shares=quote.swap_shares,
            )
        return cls(
            **common,
            amount=quote.shares_sold,
            shares=quote.shares_sold,
            cash=quote.payout,
            payout_before_fee=quote.payout_before_fee,
        )
