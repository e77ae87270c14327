from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Tuple

from .zip_codes import DENVER_MSA, LOS_ANGELES_MSA, SAN_DIEGO_MSA, SAN_FRANCISCO_MSA


@dataclass(frozen=True)
class Market:
    msa: str
    city_code: str
    exclusions: FrozenSet[str] = field(default_factory=frozenset)


MARKETS: Tuple[Market, ...] = (
    Market(msa=SAN_DIEGO_MSA, city_code="SD"),
    Market(
        msa=LOS_ANGELES_MSA,
        city_code="LA",
        exclusions=frozenset({"11011 Huston St"}),
    ),
    Market(msa=DENVER_MSA, city_code="DEN"),
    Market(msa=SAN_FRANCISCO_MSA, city_code="SF"),
)

_BY_CITY_CODE: Dict[str, Market] = {m.city_code: m for m in MARKETS}


def canonicalize_city_code(city_code: str) -> str:
    return (city_code or "").strip().upper()


def get_market(city_code: str) -> Market:
    market = _BY_CITY_CODE.get(canonicalize_city_code(city_code))
    if market is None:
        raise KeyError(f"Unknown market: {city_code}")
    return market


def list_city_codes() -> List[str]:
    return [m.city_code for m in MARKETS]
