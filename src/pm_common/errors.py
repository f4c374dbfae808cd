"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Request validation
  2xxx: Account
  3xxx: Market
  4xxx: Order execution
  5xxx: Position
  9xxx: System

Every error here is raised before any ledger mutation, or inside a transaction
that the caller rolls back. None of them leave partial state behind.
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Validation ---

class ValidationError(AppError):
    """Bad input rejected before any side effect; message is shown to the caller verbatim."""

    def __init__(self, message: str, code: int = 1001, http_status: int = 422) -> None:
        super().__init__(code, message, http_status)


# --- 2xxx: Account ---

class InsufficientFundsError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required}, available {available}",
            422,
        )


class AccountNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(2002, f"Account not found for user {user_id}", 404)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(2003, "Administrator account required", 403)


# --- 3xxx: Market ---

class MarketNotFoundError(ValidationError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market not found: {market_id}", code=3001, http_status=404)


class MarketClosedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3002, f"Market is closed: {market_id}", 422)


# --- 4xxx: Order execution ---

class LiquidityExceededError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Liquidity exceeded: {detail}", 422)


class SlippageExceededError(AppError):
    def __init__(self, final_price: Decimal, bound: Decimal, mode: str) -> None:
        relation = "above maximum" if mode == "BUY" else "below minimum"
        super().__init__(
            4002,
            f"Slippage exceeded: final price {final_price} {relation} {bound}",
            409,
        )
        self.final_price = final_price
        self.bound = bound


class QuotaExhaustedError(AppError):
    def __init__(self, daily_cap: int) -> None:
        super().__init__(4003, f"Daily order quota exhausted ({daily_cap} per day)", 429)


# --- 5xxx: Position ---

class InsufficientSharesError(AppError):
    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            5001,
            f"Insufficient shares: required {required}, available {available}",
            422,
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class ConcurrencyConflictError(AppError):
    """Lock or serialization contention. The whole operation is safe to retry."""

    def __init__(self, detail: str = "Concurrent update conflict, retry the operation") -> None:
        super().__init__(9003, detail, 409)


class StorageFaultError(AppError):
    """Persistence failed while committing; nothing was applied."""

    def __init__(self, detail: str = "Storage failure, operation not applied") -> None:
        super().__init__(9004, detail, 503)
