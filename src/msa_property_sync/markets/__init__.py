from .registry import MARKETS, Market, get_market, list_city_codes
from .resolver import DEFAULT_RESOLVER, ZipResolver, normalize_zip, resolve_county, resolve_msa

__all__ = [
    "DEFAULT_RESOLVER",
    "MARKETS",
    "Market",
    "ZipResolver",
    "get_market",
    "list_city_codes",
    "normalize_zip",
    "resolve_county",
    "resolve_msa",
]
