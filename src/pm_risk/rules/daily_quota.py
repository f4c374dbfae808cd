"""Per-user daily order quota.

A day is the UTC calendar day. Only committed BUY and SELL records count;
the record appended by each committed order is the counter increment, so the
quota can never drift from the ledger.
"""

from dataclasses import dataclass
from datetime import datetime

from src.pm_common.datetime_utils import start_of_utc_day
from src.pm_common.errors import QuotaExhaustedError


@dataclass(frozen=True)
class QuotaStatus:
    daily_cap: int
    used: int
    window_start: datetime

    @property
    def remaining(self) -> int:
        return max(0, self.daily_cap - self.used)


class DailyQuota:
    def __init__(self, daily_cap: int) -> None:
        if daily_cap < 0:
            raise ValueError(f"daily_cap must be >= 0, got {daily_cap}")
        self.daily_cap = daily_cap

    def window_start(self, now: datetime) -> datetime:
        return start_of_utc_day(now)

    def status(self, used: int, now: datetime) -> QuotaStatus:
        return QuotaStatus(daily_cap=self.daily_cap, used=used, window_start=self.window_start(now))

    def check(self, used: int, now: datetime) -> QuotaStatus:
        """Raise QuotaExhaustedError when no order is left today."""
        status = self.status(used, now)
        if status.remaining <= 0:
            raise QuotaExhaustedError(self.daily_cap)
        return status
