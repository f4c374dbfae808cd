"""Tests for pm_common.errors and pm_common.response."""

from decimal import Decimal

from src.pm_common.errors import (
    AccountNotFoundError,
    AdminRequiredError,
    AppError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    InsufficientSharesError,
    LiquidityExceededError,
    MarketClosedError,
    MarketNotFoundError,
    QuotaExhaustedError,
    SlippageExceededError,
    StorageFaultError,
    ValidationError,
)
from src.pm_common.response import ApiResponse, error_response, success_response


class TestAppError:
    def test_base_error(self) -> None:
        err = AppError(code=9002, message="Internal error")
        assert err.code == 9002
        assert err.message == "Internal error"
        assert err.http_status == 500

    def test_is_exception(self) -> None:
        assert isinstance(AppError(code=1001, message="test"), Exception)


class TestSpecificErrors:
    def test_insufficient_funds(self) -> None:
        err = InsufficientFundsError(required=Decimal("65"), available=Decimal("30.5"))
        assert err.code == 2001
        assert err.http_status == 422
        assert "65" in err.message
        assert "30.5" in err.message

    def test_insufficient_shares(self) -> None:
        err = InsufficientSharesError(Decimal("2"), Decimal("1"))
        assert err.code == 5001

    def test_account_and_admin(self) -> None:
        assert AccountNotFoundError("u").http_status == 404
        assert AdminRequiredError().http_status == 403

    def test_market_not_found_is_validation_error(self) -> None:
        err = MarketNotFoundError("mkt-123")
        assert isinstance(err, ValidationError)
        assert err.code == 3001
        assert err.http_status == 404
        assert "mkt-123" in err.message

    def test_market_closed(self) -> None:
        assert MarketClosedError("m").code == 3002

    def test_order_errors(self) -> None:
        assert LiquidityExceededError("x").code == 4001
        assert QuotaExhaustedError(25).http_status == 429
        assert "25" in QuotaExhaustedError(25).message

    def test_slippage_message_names_direction(self) -> None:
        buy = SlippageExceededError(Decimal("0.6"), Decimal("0.55"), "BUY")
        sell = SlippageExceededError(Decimal("0.4"), Decimal("0.45"), "SELL")
        assert "above maximum" in buy.message
        assert "below minimum" in sell.message
        assert buy.http_status == 409

    def test_system_errors(self) -> None:
        assert ConcurrencyConflictError().http_status == 409
        assert StorageFaultError().http_status == 503


class TestApiResponse:
    def test_success_defaults(self) -> None:
        resp = success_response({"x": 1})
        assert resp.code == 0
        assert resp.message == "success"
        assert resp.data == {"x": 1}
        assert resp.request_id.startswith("req_")

    def test_success_dumps_models_with_decimal_strings(self) -> None:
        resp = success_response(ApiResponse(data=Decimal("1.50")))
        assert resp.data["data"] == "1.50"

    def test_error_response(self) -> None:
        resp = error_response(4002, "Slippage exceeded")
        assert resp.code == 4002
        assert resp.data is None
