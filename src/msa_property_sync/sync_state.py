from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .models import SyncState
from .normalize import parse_date
from .run_result import SyncRunSummary
from .storage import SyncStateStore


class SyncStateTracker:
    def __init__(self, store: SyncStateStore) -> None:
        self.store = store

    def get(self, city_code: str) -> Optional[SyncState]:
        return self.store.get_sync_state(city_code)

    def last_successful_date(self, city_code: str) -> Optional[date]:
        state = self.get(city_code)
        if state is None:
            return None
        return parse_date(state.last_successful_date)

    def window_start(
        self, city_code: str, default_start: date, overlap_days: int = 1
    ) -> date:
        """First sale date to request on the next run.

        Re-reads ``overlap_days`` before the last success so records the
        provider published late are still picked up.
        """

        last = self.last_successful_date(city_code)
        if last is None:
            return default_start
        return last - timedelta(days=max(0, overlap_days))

    def is_current(self, city_code: str, as_of: date) -> bool:
        last = self.last_successful_date(city_code)
        return last is not None and last >= as_of

    def record_success(
        self, city_code: str, msa: str, as_of: date, summary: SyncRunSummary
    ) -> SyncState:
        previous = self.get(city_code)
        last = parse_date(previous.last_successful_date) if previous else None
        latest = max(last, as_of) if last else as_of
        total = (previous.total_records_synced if previous else 0) + summary.processed

        state = SyncState(
            city_code=city_code,
            msa=msa,
            last_successful_date=latest.isoformat(),
            processed=summary.processed,
            inserted=summary.inserted,
            updated=summary.updated,
            contacts_added=summary.contacts_added,
            total_records_synced=total,
            last_sync_at=datetime.now(timezone.utc).isoformat(),
        )
        self.store.save_sync_state(state)
        return state
