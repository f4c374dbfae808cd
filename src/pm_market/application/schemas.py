"""Pydantic schemas for pm_market API requests and responses.

Cursor format for markets (VARCHAR PK, not sequential):
  {"ts": "<sort timestamp ISO>", "id": "<market_id>"}
  Encoded as Base64 JSON string. The timestamp is resolved_at when listing
  closed markets, created_at otherwise.

Prices are the AMM's implied probabilities, reported to 6 places; a closed
market reports 1 for the winning side and 0 for the losing side.
"""

import base64
import json
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from src.pm_amm.domain.curve import current_price
from src.pm_common.decimal_utils import price_to_cents_display
from src.pm_common.enums import Side
from src.pm_market.domain.models import Market, MarketGroup, MarketStats

# ---------------------------------------------------------------------------
# Cursor utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_market: Market, by_resolved: bool = False) -> str:
    """Encode composite cursor from last market in page."""
    ts = last_market.resolved_at if by_resolved else last_market.created_at
    payload = {
        "ts": ts.isoformat() if ts else None,
        "id": last_market.id,
    }
    return base64.b64encode(json.dumps(payload).encode()).decode()


def cursor_decode(cursor: str | None) -> tuple[datetime | None, str | None]:
    """Decode composite cursor -> (ts, market_id), or (None, None) on a malformed cursor."""
    if cursor is None:
        return None, None
    try:
        data = json.loads(base64.b64decode(cursor.encode()).decode())
        ts = datetime.fromisoformat(data["ts"]) if data["ts"] else None
        return ts, data["id"]
    except (ValueError, KeyError, TypeError):
        return None, None


# ---------------------------------------------------------------------------
# Prices
# ---------------------------------------------------------------------------


def market_prices(m: Market) -> tuple[Decimal, Decimal]:
    """(yes_price, no_price) for display."""
    if m.closed:
        one, zero = Decimal("1.000000"), Decimal("0.000000")
        return (one, zero) if m.outcome == Side.YES.value else (zero, one)
    return current_price(m.pools, Side.YES), current_price(m.pools, Side.NO)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateMarketRequest(BaseModel):
    question: str = Field(max_length=500)
    description: str | None = Field(None, max_length=5000)
    group_topic: str | None = Field(None, max_length=128)

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("question must not be blank")
        return v.strip()

    @field_validator("group_topic")
    @classmethod
    def blank_topic_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()


# ---------------------------------------------------------------------------
# Market list item
# ---------------------------------------------------------------------------


class MarketListItem(BaseModel):
    id: str
    question: str
    group_topic: str | None
    closed: bool
    outcome: str
    yes_price: Decimal
    no_price: Decimal
    yes_price_display: str
    no_price_display: str
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketListItem":
        yes, no = market_prices(m)
        return cls(
            id=m.id,
            question=m.question,
            group_topic=m.group_topic,
            closed=m.closed,
            outcome=m.outcome,
            yes_price=yes,
            no_price=no,
            yes_price_display=price_to_cents_display(yes),
            no_price_display=price_to_cents_display(no),
            created_at=_iso(m.created_at),
            resolved_at=_iso(m.resolved_at),
        )


class MarketListResponse(BaseModel):
    items: list[MarketListItem]
    next_cursor: str | None
    has_more: bool


class MarketGroupOut(BaseModel):
    topic: str | None
    markets: list[MarketListItem]

    @classmethod
    def from_domain(cls, g: MarketGroup) -> "MarketGroupOut":
        return cls(topic=g.topic, markets=[MarketListItem.from_domain(m) for m in g.markets])


class MarketGroupsResponse(BaseModel):
    groups: list[MarketGroupOut]
    ungrouped: list[MarketListItem]


# ---------------------------------------------------------------------------
# Market detail (full fields: includes pools and seed liquidity)
# ---------------------------------------------------------------------------


class MarketDetail(BaseModel):
    id: str
    question: str
    description: str | None
    group_topic: str | None
    closed: bool
    outcome: str
    pool_yes: Decimal
    pool_no: Decimal
    seed_liquidity: Decimal
    yes_price: Decimal
    no_price: Decimal
    yes_price_display: str
    no_price_display: str
    created_at: str | None
    resolved_at: str | None

    @classmethod
    def from_domain(cls, m: Market) -> "MarketDetail":
        yes, no = market_prices(m)
        return cls(
            id=m.id,
            question=m.question,
            description=m.description,
            group_topic=m.group_topic,
            closed=m.closed,
            outcome=m.outcome,
            pool_yes=m.pool_yes,
            pool_no=m.pool_no,
            seed_liquidity=m.seed_liquidity,
            yes_price=yes,
            no_price=no,
            yes_price_display=price_to_cents_display(yes),
            no_price_display=price_to_cents_display(no),
            created_at=_iso(m.created_at),
            resolved_at=_iso(m.resolved_at),
        )


class MarketStatsResponse(BaseModel):
    market_id: str
    total_trades: int
    total_volume: Decimal
    total_fees: Decimal
    unique_traders: int

    @classmethod
    def from_domain(cls, s: MarketStats) -> "MarketStatsResponse":
        return cls(
            market_id=s.market_id,
            total_trades=s.total_trades,
            total_volume=s.total_volume,
            total_fees=s.total_fees,
            unique_traders=s.unique_traders,
        )
