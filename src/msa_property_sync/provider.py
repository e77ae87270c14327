from __future__ import annotations

import random
import time
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from .errors import ProviderError
from .logs import get_logger
from .normalize import to_iso_date
from .settings import ProviderCredentials


logger = get_logger("provider")

RETRY_STATUS = {429, 500, 502, 503, 504}
MARKET_ENDPOINT = "/buyers/market"


class RetryConfig:
    def __init__(self, retries=2, base_delay=0.5, factor=2.0, jitter=0.1):
        self.retries = retries
        self.base_delay = base_delay
        self.factor = factor
        self.jitter = jitter


def compute_backoff_delays(
    retries, base_delay=0.5, factor=2.0, jitter=0.1, rand_fn=None
):
    delays = []
    current = base_delay
    rand_fn = rand_fn or random.random
    for _ in range(retries):
        noise = (rand_fn() * 2 - 1) * jitter
        delays.append(max(0.0, current + noise))
        current *= factor
    return delays


class MarketRecordSource(Protocol):
    def fetch_market_records(
        self,
        msa: str,
        credentials: ProviderCredentials,
        *,
        since: date,
        until: date,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError


def _record_fingerprint(record: Mapping[str, Any]) -> tuple:
    return (
        str(record.get("address") or "").strip().lower(),
        str(record.get("saleDate") or ""),
        str(record.get("recordingDate") or ""),
        str(record.get("buyerName") or "").strip().lower(),
    )


class ProviderClient:
    """Client for the provider's buyers-market feed.

    Pages are requested sorted by sale date. When a page is full, the next
    page starts at the last record's sale date (the lower bound is inclusive,
    so boundary records repeat and are dropped here). Transient statuses are
    retried with exponential backoff; anything else raises ProviderError.
    """

    def __init__(
        self,
        *,
        timeout_s: float = 30,
        page_size: int = 100,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
        sleep_fn=time.sleep,
        max_pages: int = 1000,
    ) -> None:
        self.timeout_s = timeout_s
        self.page_size = max(1, int(page_size))
        self.retry_config = retry_config or RetryConfig()
        self.max_pages = max_pages
        self._session = session or requests.Session()
        self._sleep = sleep_fn

    def _get_json(
        self, credentials: ProviderCredentials, path: str, params: Mapping[str, Any]
    ) -> Any:
        url = f"{credentials.api_url.rstrip('/')}{path}"
        headers = {"X-API-TOKEN": credentials.api_key, "Accept": "application/json"}
        delays = compute_backoff_delays(
            self.retry_config.retries,
            self.retry_config.base_delay,
            self.retry_config.factor,
            self.retry_config.jitter,
        )
        attempts = len(delays) + 1
        last_error: Optional[str] = None
        last_status: Optional[int] = None
        for attempt in range(attempts):
            try:
                resp = self._session.get(
                    url, params=dict(params), headers=headers, timeout=self.timeout_s
                )
            except requests.RequestException as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                last_status = None
            else:
                if resp.status_code == 200:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        raise ProviderError(
                            f"malformed JSON from {path}", status=resp.status_code
                        ) from exc
                last_status = resp.status_code
                last_error = f"HTTP {resp.status_code}: {resp.text[:200]}"
                if resp.status_code not in RETRY_STATUS:
                    break
            if attempt < len(delays):
                logger.warning(
                    "provider request to %s failed (%s); retrying in %.2fs",
                    path,
                    last_error,
                    delays[attempt],
                )
                self._sleep(delays[attempt])
        raise ProviderError(f"provider request to {path} failed: {last_error}", status=last_status)

    def fetch_market_records(
        self,
        msa: str,
        credentials: ProviderCredentials,
        *,
        since: date,
        until: date,
    ) -> List[Dict[str, Any]]:
        if not credentials.api_key or not credentials.api_url:
            raise ProviderError("provider credentials are not configured")

        records: List[Dict[str, Any]] = []
        seen: set[tuple] = set()
        current_min = since.isoformat()
        max_date = until.isoformat()

        for page_num in range(1, self.max_pages + 1):
            page = self._get_json(
                credentials,
                MARKET_ENDPOINT,
                {
                    "msa": msa,
                    "sales_date_min": current_min,
                    "sales_date_max": max_date,
                    "page_size": self.page_size,
                    "sort": "sale_date",
                },
            )
            if not isinstance(page, list):
                raise ProviderError(
                    f"expected a list of records on page {page_num}, got {type(page).__name__}"
                )
            if not page:
                break

            for record in page:
                if not isinstance(record, dict):
                    raise ProviderError(f"non-object record on page {page_num}")
                fingerprint = _record_fingerprint(record)
                if fingerprint in seen:
                    continue
                seen.add(fingerprint)
                records.append(record)

            logger.info(
                "fetched page %s for %s from %s with %s records",
                page_num,
                msa,
                current_min,
                len(page),
            )

            if len(page) < self.page_size:
                break
            next_min = to_iso_date(page[-1].get("saleDate"))
            if not next_min or next_min <= current_min:
                # A full page on a single sale date cannot be paged past.
                raise ProviderError(
                    f"pagination for {msa} stalled at {current_min} on page {page_num}"
                )
            current_min = next_min
        else:
            raise ProviderError(f"pagination for {msa} exceeded {self.max_pages} pages")

        return records
