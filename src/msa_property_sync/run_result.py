from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SyncRunSummary:
    city_code: str
    msa: str
    since: Optional[str] = None
    as_of: Optional[str] = None
    fetched: int = 0
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    excluded: int = 0
    duplicates: int = 0
    contacts_added: int = 0
    skipped: bool = False
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    errors: List[dict] = field(default_factory=list)

    def add_error(self, address: Optional[str], message: str) -> None:
        self.errors.append({"address": address, "error": message})

    def to_dict(self) -> dict:
        return {
            "city_code": self.city_code,
            "msa": self.msa,
            "since": self.since,
            "as_of": self.as_of,
            "fetched": self.fetched,
            "processed": self.processed,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "excluded": self.excluded,
            "duplicates": self.duplicates,
            "contacts_added": self.contacts_added,
            "skipped": self.skipped,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "errors": [dict(e) for e in self.errors],
        }
