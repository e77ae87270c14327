from __future__ import annotations

from typing import Optional

from .logs import get_logger
from .models import CompanyContact
from .normalize import normalize_company_name, normalize_county_name
from .storage import CompanyContactStore


logger = get_logger("contacts")


class CompanyContactMerger:
    """Keeps the company directory in step with the owners seen during syncs.

    A company's county list only ever grows. Contact details entered through
    the dashboard are never touched here.
    """

    def __init__(self, store: CompanyContactStore) -> None:
        self.store = store

    def upsert_company_contact(self, name: Optional[str], county: Optional[str]) -> bool:
        """Returns True only when a new contact was created."""

        company_name = normalize_company_name(name)
        county_name = normalize_county_name(county)
        if not company_name or not county_name:
            return False

        existing = self.store.get_company_contact(company_name)
        if existing is None:
            created = self.store.insert_company_contact(
                CompanyContact(company_name=company_name, counties=[county_name])
            )
            if created:
                logger.info("new company contact %s (%s)", company_name, county_name)
                return True
            # Lost an insert race; fall through to the county merge.

        if self.store.add_company_county(company_name, county_name):
            logger.debug("added county %s to %s", county_name, company_name)
        return False
