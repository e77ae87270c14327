from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from ..errors import SyncCancelled, SyncError
from ..logs import get_logger
from ..markets.registry import MARKETS, Market, get_market
from ..orchestrator import SyncOrchestrator
from ..settings import Settings, get_settings
from ..storage import SQLiteStore


logger = get_logger("scheduler")

OrchestratorFactory = Callable[[Settings, SQLiteStore], SyncOrchestrator]


def _run_market(
    market: Market,
    *,
    settings: Settings,
    db_path: str,
    as_of: date,
    force: bool,
    cancel_event: Optional[threading.Event],
    orchestrator_factory: OrchestratorFactory,
) -> Dict[str, Any]:
    # Each market gets its own connection so markets can run side by side.
    store = SQLiteStore(db_path)
    try:
        orchestrator = orchestrator_factory(settings, store)
        summary = orchestrator.sync_market(
            market.msa,
            market.city_code,
            settings.credentials,
            as_of,
            exclusions=market.exclusions,
            skip_if_current=not force,
            cancel_event=cancel_event,
        )
        return {"ok": True, "city_code": market.city_code, "summary": summary.to_dict()}
    except SyncError as e:
        return {
            "ok": False,
            "city_code": market.city_code,
            "error": str(e),
            "cancelled": isinstance(e, SyncCancelled),
        }
    except Exception as e:
        logger.exception("[%s] unexpected sync failure", market.city_code)
        return {"ok": False, "city_code": market.city_code, "error": f"{type(e).__name__}: {e}"}
    finally:
        store.close()


def run_daily_sync(
    *,
    db_path: Optional[str] = None,
    city_codes: Optional[List[str]] = None,
    as_of: Optional[date] = None,
    settings: Optional[Settings] = None,
    force: bool = False,
    max_concurrent_markets: int = 1,
    cancel_event: Optional[threading.Event] = None,
    orchestrator_factory: Optional[OrchestratorFactory] = None,
) -> Dict[str, Any]:
    """Run one sync pass over the configured markets.

    A market that fails is reported in its own entry and the remaining
    markets still run. Unless ``force`` is set, markets already synced
    through ``as_of`` are skipped.
    """

    settings = settings or get_settings()
    db_path = db_path or settings.db_path
    as_of = as_of or date.today()
    factory = orchestrator_factory or SyncOrchestrator.from_settings

    if city_codes:
        markets = [get_market(code) for code in city_codes]
    else:
        markets = list(MARKETS)

    def run(market: Market) -> Dict[str, Any]:
        return _run_market(
            market,
            settings=settings,
            db_path=db_path,
            as_of=as_of,
            force=force,
            cancel_event=cancel_event,
            orchestrator_factory=factory,
        )

    workers = max(1, min(int(max_concurrent_markets or 1), len(markets) or 1))
    if workers == 1:
        results = [run(m) for m in markets]
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="market") as pool:
            results = list(pool.map(run, markets))

    return {
        "ok": all(r.get("ok") for r in results),
        "as_of": as_of.isoformat(),
        "db": db_path,
        "markets": results,
    }


def dumps(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, indent=2, default=str) + "\n"
