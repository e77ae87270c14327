from __future__ import annotations

import re
from typing import Optional, Sequence, Union

from .zip_codes import ZIP_TABLE, CountyZipList


_ZIP5_RE = re.compile(r"^(\d{5})(?:-?\d{4})?$")


def normalize_zip(value: Union[str, int, None]) -> Optional[str]:
    """``" 92101-1234 "`` -> ``"92101"``; anything else that is not a zip -> None."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        value = f"{value:05d}"
    match = _ZIP5_RE.match(str(value).strip())
    if not match:
        return None
    return match.group(1)


class ZipResolver:
    """First-match lookup over an ordered table of county zip lists."""

    def __init__(self, table: Sequence[CountyZipList] = ZIP_TABLE) -> None:
        self._table = tuple(table)

    def _match(self, zip_code: Union[str, int, None]) -> Optional[CountyZipList]:
        zip5 = normalize_zip(zip_code)
        if zip5 is None:
            return None
        for entry in self._table:
            if zip5 in entry.zips:
                return entry
        return None

    def resolve_msa(self, zip_code: Union[str, int, None]) -> Optional[str]:
        entry = self._match(zip_code)
        return entry.msa if entry else None

    def resolve_county(self, zip_code: Union[str, int, None]) -> Optional[str]:
        entry = self._match(zip_code)
        return entry.county if entry else None


DEFAULT_RESOLVER = ZipResolver()


def resolve_msa(zip_code: Union[str, int, None]) -> Optional[str]:
    return DEFAULT_RESOLVER.resolve_msa(zip_code)


def resolve_county(zip_code: Union[str, int, None]) -> Optional[str]:
    return DEFAULT_RESOLVER.resolve_county(zip_code)
