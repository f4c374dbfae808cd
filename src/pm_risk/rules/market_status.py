from src.pm_common.errors import MarketClosedError, MarketNotFoundError
from src.pm_market.domain.models import Market


def check_market_open(market: Market | None, market_id: str) -> Market:
    """Return the market if it exists and still trades."""
    if market is None:
        raise MarketNotFoundError(market_id)
    if market.closed:
        raise MarketClosedError(market_id)
    return market
