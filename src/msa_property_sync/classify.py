from __future__ import annotations

import re
from typing import Optional, Pattern, Tuple


# TR = trust, FL = family living trust
TRUST_OWNERSHIP_CODES = frozenset({"TR", "FL"})

TRUST_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bTRUST\b",
        r"\bLIVING TRUST\b",
        r"\bFAMILY TRUST\b",
        r"\bREVOCABLE TRUST\b",
        r"\bIRREVOCABLE TRUST\b",
        r"\bSPOUSAL TRUST\b",
    )
)

CORPORATE_PATTERNS: Tuple[Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\bLLC\b",
        r"\bINC\b",
        r"\bCORP\b",
        r"\bLTD\b",
        r"\bLP\b",
        r"\bPROPERTIES\b",
        r"\bINVESTMENTS?\b",
        r"\bCAPITAL\b",
        r"\bVENTURES?\b",
        r"\bHOLDINGS?\b",
        r"\bREALTY\b",
    )
)


def is_trust(name: Optional[str], ownership_code: Optional[str]) -> bool:
    if not name:
        return False
    if ownership_code and ownership_code.strip().upper() in TRUST_OWNERSHIP_CODES:
        return True
    return any(p.search(name) for p in TRUST_PATTERNS)


def is_flipping_company(name: Optional[str], ownership_code: Optional[str]) -> bool:
    """Corporate owner that is not a trust."""

    if not name:
        return False
    if is_trust(name, ownership_code):
        return False
    return any(p.search(name) for p in CORPORATE_PATTERNS)


def classify_owner(name: Optional[str], ownership_code: Optional[str]) -> Optional[str]:
    if not name or not name.strip():
        return None
    if is_trust(name, ownership_code):
        return "trust"
    if is_flipping_company(name, ownership_code):
        return "company"
    return "individual"
