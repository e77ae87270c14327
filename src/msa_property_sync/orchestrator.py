from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from .classify import classify_owner, is_flipping_company
from .contacts import CompanyContactMerger
from .errors import (
    GeocodingError,
    GeocodingUnavailable,
    ProviderError,
    RecordError,
    StoreError,
    SyncCancelled,
    SyncError,
)
from .geocoding import CensusGeocoder, CountyGeocoder
from .logs import get_logger
from .markets.resolver import DEFAULT_RESOLVER, ZipResolver, normalize_zip
from .models import PropertyRecord, ProviderRecord
from .normalize import (
    address_key,
    normalize_address,
    normalize_county_name,
    normalize_property_type,
    parse_date,
    to_iso_date,
)
from .provider import MarketRecordSource, ProviderClient
from .run_result import SyncRunSummary
from .settings import DEFAULT_START_DATE, ProviderCredentials, Settings
from .storage import PropertyStore, SQLiteStore
from .sync_state import SyncStateTracker


logger = get_logger("orchestrator")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class _Candidate:
    raw_address: str
    normalized_address: str
    record: ProviderRecord
    sale_date: Optional[date]


class SyncOrchestrator:
    """Drives one sync run per market.

    Record-level problems are counted in the summary and the run carries on.
    Provider, store and geocoder-availability failures abort the run with a
    SyncError; the sync state is only written after every record went in.
    """

    def __init__(
        self,
        *,
        provider: MarketRecordSource,
        property_store: PropertyStore,
        state_tracker: SyncStateTracker,
        contact_merger: CompanyContactMerger,
        geocoder: Optional[CountyGeocoder] = None,
        resolver: ZipResolver = DEFAULT_RESOLVER,
        default_start_date: date = DEFAULT_START_DATE,
        max_workers: int = 4,
        overlap_days: int = 1,
    ) -> None:
        self.provider = provider
        self.property_store = property_store
        self.state_tracker = state_tracker
        self.contact_merger = contact_merger
        self.geocoder = geocoder
        self.resolver = resolver
        self.default_start_date = default_start_date
        self.max_workers = max(1, int(max_workers))
        self.overlap_days = overlap_days

    @classmethod
    def from_settings(cls, settings: Settings, store: SQLiteStore) -> "SyncOrchestrator":
        return cls(
            provider=ProviderClient(
                timeout_s=settings.provider_timeout_s, page_size=settings.page_size
            ),
            property_store=store,
            state_tracker=SyncStateTracker(store),
            contact_merger=CompanyContactMerger(store),
            geocoder=CensusGeocoder(
                url=settings.geocoder_url, timeout_s=settings.geocoder_timeout_s
            ),
            default_start_date=settings.default_start_date,
            max_workers=settings.max_workers,
        )

    # ------------------------------------------------------------------

    def sync_market(
        self,
        msa: str,
        city_code: str,
        credentials: ProviderCredentials,
        as_of: date,
        exclusions: Iterable[str] = (),
        *,
        skip_if_current: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> SyncRunSummary:
        summary = SyncRunSummary(
            city_code=city_code,
            msa=msa,
            as_of=as_of.isoformat(),
            started_at=_utc_now_iso(),
        )
        try:
            self._run(
                summary,
                msa,
                city_code,
                credentials,
                as_of,
                exclusions,
                skip_if_current=skip_if_current,
                cancel_event=cancel_event,
            )
        except SyncError:
            raise
        except (ProviderError, GeocodingUnavailable, StoreError) as exc:
            logger.error("[%s] sync aborted: %s", city_code, exc)
            raise SyncError(city_code, exc) from exc
        summary.finished_at = _utc_now_iso()
        return summary

    def _run(
        self,
        summary: SyncRunSummary,
        msa: str,
        city_code: str,
        credentials: ProviderCredentials,
        as_of: date,
        exclusions: Iterable[str],
        *,
        skip_if_current: bool,
        cancel_event: Optional[threading.Event],
    ) -> None:
        if skip_if_current and self.state_tracker.is_current(city_code, as_of):
            logger.info("[%s] already synced through %s; skipping", city_code, as_of)
            summary.skipped = True
            return

        since = self.state_tracker.window_start(
            city_code, self.default_start_date, overlap_days=self.overlap_days
        )
        since = min(since, as_of)
        summary.since = since.isoformat()

        self._check_cancelled(city_code, cancel_event)
        raw_records = self.provider.fetch_market_records(
            msa, credentials, since=since, until=as_of
        )
        summary.fetched = len(raw_records)
        logger.info(
            "[%s] fetched %s records for %s (%s..%s)",
            city_code,
            len(raw_records),
            msa,
            since,
            as_of,
        )

        excluded_keys = {k for k in (address_key(e) for e in exclusions) if k}
        candidates = self._collect_candidates(
            summary, raw_records, excluded_keys, city_code, cancel_event
        )

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix=f"sync-{city_code}"
        ) as pool:
            futures: List[Future] = [
                pool.submit(self._build_record, c, msa, city_code, cancel_event)
                for c in candidates
            ]
            try:
                for candidate, future in zip(candidates, futures):
                    self._check_cancelled(city_code, cancel_event)
                    self._apply(summary, candidate, future, city_code)
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        self._check_cancelled(city_code, cancel_event)
        self.state_tracker.record_success(city_code, msa, as_of, summary)
        logger.info(
            "[%s] sync complete: processed=%s inserted=%s updated=%s unchanged=%s "
            "excluded=%s duplicates=%s contacts_added=%s errors=%s",
            city_code,
            summary.processed,
            summary.inserted,
            summary.updated,
            summary.unchanged,
            summary.excluded,
            summary.duplicates,
            summary.contacts_added,
            len(summary.errors),
        )

    @staticmethod
    def _check_cancelled(city_code: str, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelled(city_code, "cancelled")

    def _record_error(
        self, summary: SyncRunSummary, city_code: str, address: Optional[str], exc: Exception
    ) -> None:
        summary.processed += 1
        summary.add_error(address, str(exc))
        logger.warning("[%s] skipped record %r: %s", city_code, address, exc)

    def _collect_candidates(
        self,
        summary: SyncRunSummary,
        raw_records: List[Mapping[str, Any]],
        excluded_keys: set,
        city_code: str,
        cancel_event: Optional[threading.Event],
    ) -> List[_Candidate]:
        """Drop excluded addresses, validate, and collapse duplicates.

        Exclusion is decided on the raw address alone, so an excluded record
        is never counted as processed even when its other fields are invalid.

        For one address the record with the latest sale date wins; on a tie
        the one seen later wins.
        """

        by_key: Dict[str, _Candidate] = {}
        for raw in raw_records:
            self._check_cancelled(city_code, cancel_event)
            raw_address = raw.get("address") if isinstance(raw, Mapping) else None
            normalized = normalize_address(raw_address)
            key = normalized.casefold() if normalized else None
            if key is not None and key in excluded_keys:
                summary.excluded += 1
                logger.debug("[%s] excluded %s", city_code, normalized)
                continue

            try:
                record = ProviderRecord.model_validate(raw)
            except ValidationError as exc:
                self._record_error(summary, city_code, raw_address, exc)
                continue

            if not normalized or key is None:
                self._record_error(
                    summary, city_code, record.address, RecordError("missing address")
                )
                continue

            candidate = _Candidate(
                raw_address=record.address or normalized,
                normalized_address=normalized,
                record=record,
                sale_date=parse_date(record.sale_date) or parse_date(record.recording_date),
            )
            previous = by_key.get(key)
            if previous is not None:
                summary.duplicates += 1
                if (previous.sale_date or date.min) > (candidate.sale_date or date.min):
                    continue
            by_key[key] = candidate
        return list(by_key.values())

    def _build_record(
        self,
        candidate: _Candidate,
        msa: str,
        city_code: str,
        cancel_event: Optional[threading.Event],
    ) -> PropertyRecord:
        self._check_cancelled(city_code, cancel_event)
        rec = candidate.record
        zip5 = normalize_zip(rec.zip)

        record_msa = rec.msa or self.resolver.resolve_msa(zip5) or msa
        county = normalize_county_name(rec.county) or self.resolver.resolve_county(zip5)
        if not county and rec.latitude is not None and rec.longitude is not None:
            if self.geocoder is not None:
                county = self.geocoder.resolve_county(rec.longitude, rec.latitude)
        if not county:
            raise RecordError(
                "county could not be resolved", address=candidate.raw_address
            )

        price = rec.price if rec.price is not None else rec.sale_value
        sale_date = to_iso_date(rec.sale_date) or to_iso_date(rec.recording_date)
        return PropertyRecord(
            city_code=city_code,
            address=candidate.raw_address,
            normalized_address=candidate.normalized_address,
            county=county,
            msa=record_msa,
            city=rec.city,
            state=rec.state,
            zip=zip5 or rec.zip,
            owner_name=rec.owner_name,
            ownership_code=rec.ownership_code,
            owner_is_company=classify_owner(rec.owner_name, rec.ownership_code) == "company",
            seller_name=rec.seller_name,
            seller_is_company=is_flipping_company(rec.seller_name, None),
            property_type_raw=rec.property_type,
            property_type=normalize_property_type(rec.property_type),
            price=price or 0,
            purchase_price=rec.sale_value,
            sale_date=sale_date,
            latitude=rec.latitude,
            longitude=rec.longitude,
        )

    def _apply(
        self,
        summary: SyncRunSummary,
        candidate: _Candidate,
        future: Future,
        city_code: str,
    ) -> None:
        try:
            record = future.result()
        except GeocodingUnavailable:
            raise
        except (RecordError, GeocodingError) as exc:
            self._record_error(summary, city_code, candidate.raw_address, exc)
            return

        outcome = self.property_store.upsert_property(record)
        summary.processed += 1
        if outcome == "inserted":
            summary.inserted += 1
        elif outcome == "updated":
            summary.updated += 1
        else:
            summary.unchanged += 1

        if record.owner_is_company:
            if self.contact_merger.upsert_company_contact(record.owner_name, record.county):
                summary.contacts_added += 1
        if record.seller_is_company:
            if self.contact_merger.upsert_company_contact(record.seller_name, record.county):
                summary.contacts_added += 1
