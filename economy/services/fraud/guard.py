"""
FraudGuard: decides whether a claimed ad watch may be rewarded.

Stateless: every check is a query over append-only AdWatchRecords, so a
decision can be replayed from history. Checks run in a fixed order and
short-circuit on the first failure: format, cooldown, daily cap, hourly cap, replay.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import delete, func
from sqlalchemy.orm import Session

from economy.models.ad_watch import AdWatchRecord
from economy.schemas.outcomes import AdEligibility, RejectionCode
from economy.services.transactions import commit_or_fail, storage_operation
from economy.utils.timeutil import as_utc, utc_day_start, utcnow

logger = logging.getLogger(__name__)

TOKEN_MIN_LENGTH = 10
REPLAY_WINDOW_MINUTES = 5
COOLDOWN_LOOKBACK = timedelta(hours=24)
HOURLY_WINDOW = timedelta(hours=1)


def is_well_formed(ad_token: str | None, min_length: int = TOKEN_MIN_LENGTH) -> bool:
    return bool(ad_token) and len(ad_token) >= min_length


class FraudGuard:
    def __init__(self, db: Session):
        self.db = db

    def evaluate(
        self,
        account_id: str,
        ad_token: str,
        cooldown_minutes: int,
        daily_limit: int,
        hourly_limit: int,
        now: datetime | None = None,
        replay_window_minutes: int = REPLAY_WINDOW_MINUTES,
        token_min_length: int = TOKEN_MIN_LENGTH,
    ) -> AdEligibility:
        now = now or utcnow()

        if not is_well_formed(ad_token, token_min_length):
            return AdEligibility.reject(RejectionCode.INVALID_TOKEN)

        last_watch = self._last_watch_at(account_id, since=now - COOLDOWN_LOOKBACK)
        if last_watch is not None:
            elapsed = now - as_utc(last_watch)
            if elapsed < timedelta(minutes=cooldown_minutes):
                remaining = max(0, cooldown_minutes * 60 - int(elapsed.total_seconds()))
                return AdEligibility.reject(RejectionCode.COOLDOWN, cooldown_seconds=remaining)

        daily_count = self._count_since(account_id, utc_day_start(now), inclusive=True)
        if daily_count >= daily_limit:
            return AdEligibility.reject(RejectionCode.DAILY_LIMIT, daily_remaining=0)

        hourly_count = self._count_since(account_id, now - HOURLY_WINDOW)
        if hourly_count >= hourly_limit:
            return AdEligibility.reject(RejectionCode.HOURLY_LIMIT, hourly_remaining=0)

        if self._token_seen(account_id, ad_token, since=now - timedelta(minutes=replay_window_minutes)):
            return AdEligibility.reject(RejectionCode.REPLAY)

        return AdEligibility(
            eligible=True,
            daily_remaining=daily_limit - daily_count - 1,
            hourly_remaining=hourly_limit - hourly_count - 1,
        )

    def validate_for_unlock(
        self,
        account_id: str,
        ad_token: str,
        now: datetime | None = None,
        replay_window_minutes: int = REPLAY_WINDOW_MINUTES,
        token_min_length: int = TOKEN_MIN_LENGTH,
    ) -> AdEligibility:
        """Ad-based unlocks are not rate limited: only format and replay are checked."""
        now = now or utcnow()
        if not is_well_formed(ad_token, token_min_length):
            return AdEligibility.reject(RejectionCode.INVALID_TOKEN)
        if self._token_seen(account_id, ad_token, since=now - timedelta(minutes=replay_window_minutes)):
            return AdEligibility.reject(RejectionCode.REPLAY)
        return AdEligibility(eligible=True)

    def record_watch(
        self,
        account_id: str,
        ad_token: str,
        content_ref: str | None = None,
        now: datetime | None = None,
    ) -> AdWatchRecord:
        """Consume the watch. Flush only: the caller owns the transaction."""
        record = AdWatchRecord(
            account_id=account_id,
            ad_token=ad_token,
            content_ref=content_ref,
            created_at=now or utcnow(),
        )
        self.db.add(record)
        self.db.flush()
        return record

    @storage_operation("prune_ad_watch_records")
    def prune(self, older_than: timedelta, now: datetime | None = None) -> int:
        """Delete records past retention. Never reaches inside the guard windows."""
        if older_than < COOLDOWN_LOOKBACK:
            raise ValueError("retention must cover the 24h guard windows")
        threshold = (now or utcnow()) - older_than
        result = self.db.execute(
            delete(AdWatchRecord)
            .where(AdWatchRecord.created_at < threshold)
            .execution_options(synchronize_session=False)
        )
        commit_or_fail(self.db, "prune_ad_watch_records")
        removed = result.rowcount or 0
        logger.info("ad_watch_records_pruned", extra={"removed": removed})
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _last_watch_at(self, account_id: str, since: datetime) -> datetime | None:
        return (
            self.db.query(func.max(AdWatchRecord.created_at))
            .filter(AdWatchRecord.account_id == account_id, AdWatchRecord.created_at > since)
            .scalar()
        )

    def _count_since(self, account_id: str, since: datetime, inclusive: bool = False) -> int:
        bound = AdWatchRecord.created_at >= since if inclusive else AdWatchRecord.created_at > since
        return (
            self.db.query(func.count(AdWatchRecord.id))
            .filter(AdWatchRecord.account_id == account_id, bound)
            .scalar()
        ) or 0

    def _token_seen(self, account_id: str, ad_token: str, since: datetime) -> bool:
        return (
            self.db.query(AdWatchRecord.id)
            .filter(
                AdWatchRecord.account_id == account_id,
                AdWatchRecord.ad_token == ad_token,
                AdWatchRecord.created_at > since,
            )
            .first()
        ) is not None
