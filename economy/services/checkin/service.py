"""
CheckInService: daily login bonus on a repeating 7-day payout cycle.

Days are UTC calendar days. One claim per day is enforced by the ledger
idempotency key checkin:<account>:<YYYY-MM-DD>, not only by the pre-check.
"""
import logging
from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from economy.models.ledger_entry import LedgerEntry, LedgerKind, LedgerSource
from economy.schemas.outcomes import CheckInOutcome, CheckInResultStatus, CheckInState
from economy.services.economy_config import DEFAULT_CHECKIN_PAYOUTS
from economy.services.ledger.service import LedgerService
from economy.services.transactions import commit_or_fail, storage_operation
from economy.utils.metrics import checkins_total
from economy.utils.timeutil import utc_day, utcnow

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def run_length(days_desc: list[date], end_day: date) -> int:
    """Number of consecutive days ending at end_day, given distinct days newest first."""
    expected = end_day
    length = 0
    for day in days_desc:
        if day > expected:
            continue
        if day != expected:
            break
        length += 1
        expected -= ONE_DAY
    return length


def payout_for(streak: int, payouts: tuple[int, ...] = DEFAULT_CHECKIN_PAYOUTS) -> int:
    return payouts[(streak - 1) % len(payouts)]


def idempotency_key_for(account_id: str, day: date) -> str:
    return f"checkin:{account_id}:{day.isoformat()}"


class CheckInService:
    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    @storage_operation("check_in")
    def check_in(
        self,
        account_id: str,
        payouts: tuple[int, ...] = DEFAULT_CHECKIN_PAYOUTS,
        now: datetime | None = None,
    ) -> CheckInOutcome:
        now = now or utcnow()
        today = utc_day(now)
        self.ledger.get_or_create_account(account_id)

        days = self._checkin_days(account_id)
        if days and days[0] >= today:
            return self._already_claimed(account_id)

        streak = run_length(days, today - ONE_DAY) + 1
        day_index = (streak - 1) % len(payouts)
        coins = payout_for(streak, payouts)

        try:
            new_balance = self.ledger.apply_delta(
                account_id,
                coins,
                LedgerKind.EARN,
                LedgerSource.DAILY_CHECKIN,
                idempotency_key=idempotency_key_for(account_id, today),
                now=now,
            )
        except IntegrityError:
            # Another device claimed today between the check and the insert
            self.db.rollback()
            return self._already_claimed(account_id)
        commit_or_fail(self.db, "check_in")

        checkins_total.labels(outcome=CheckInResultStatus.GRANTED.value).inc()
        logger.info(
            "daily_checkin_granted",
            extra={"account_id": account_id, "amount": coins, "balance": new_balance, "streak": streak},
        )
        return CheckInOutcome(
            status=CheckInResultStatus.GRANTED,
            coins_earned=coins,
            new_balance=new_balance,
            streak=streak,
            day_index=day_index,
        )

    @storage_operation("check_in_status")
    def status(
        self,
        account_id: str,
        payouts: tuple[int, ...] = DEFAULT_CHECKIN_PAYOUTS,
        now: datetime | None = None,
    ) -> CheckInState:
        today = utc_day(now or utcnow())
        days = self._checkin_days(account_id)
        claimed_today = bool(days) and days[0] >= today
        streak = run_length(days, today if claimed_today else today - ONE_DAY)
        return CheckInState(
            claimed_today=claimed_today,
            streak=streak,
            next_payout=payouts[streak % len(payouts)],
        )

    def _checkin_days(self, account_id: str) -> list[date]:
        rows = (
            self.db.query(LedgerEntry.created_at)
            .filter(
                LedgerEntry.account_id == account_id,
                LedgerEntry.source == LedgerSource.DAILY_CHECKIN.value,
            )
            .order_by(LedgerEntry.created_at.desc())
            .all()
        )
        days: list[date] = []
        for (created_at,) in rows:
            day = utc_day(created_at)
            if not days or days[-1] != day:
                days.append(day)
        return days

    def _already_claimed(self, account_id: str) -> CheckInOutcome:
        checkins_total.labels(outcome=CheckInResultStatus.ALREADY_CLAIMED.value).inc()
        logger.info("daily_checkin_already_claimed", extra={"account_id": account_id})
        return CheckInOutcome(status=CheckInResultStatus.ALREADY_CLAIMED)
