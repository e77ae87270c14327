import re
from datetime import date, datetime, timedelta
from types import MappingProxyType
from typing import Callable, Optional, Tuple, Union

from dateutil import parser as date_parser


_WHITESPACE_RE = re.compile(r"\s+")
_SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
_LEADING_NUMBER_RE = re.compile(r"^\d+")
_COMPANY_KEY_PUNCT_RE = re.compile(r"[,.;:]")
_TRAILING_PUNCT_RE = re.compile(r"[,.;]+$")

# Legacy spreadsheet exports count days from this anchor.
SERIAL_DATE_EPOCH = date(1899, 12, 30)
SERIAL_DATE_MAX = 100000
SERIAL_YEAR_RANGE = (1900, 2100)

# Components missing from a calendar string are filled from here, never from "now".
_PARSE_DEFAULT = datetime(1900, 1, 1)

DateInput = Union[str, int, float, date, datetime, None]


def _capitalize(word: str) -> str:
    if not word:
        return word
    return word[0].upper() + word[1:].lower()


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def _parse_serial(text: str) -> Optional[date]:
    if not _SERIAL_RE.match(text):
        return None
    number = float(text)
    if not 0 < number < SERIAL_DATE_MAX:
        return None
    parsed = SERIAL_DATE_EPOCH + timedelta(days=int(number))
    low, high = SERIAL_YEAR_RANGE
    if low <= parsed.year <= high:
        return parsed
    return None


def parse_date(raw: DateInput) -> Optional[date]:
    """Parse a provider date.

    The provider's export pipeline emits either spreadsheet serial day counts
    (``"45627"``) or calendar strings (``"2024-12-01"``, ``"12/01/2024"``).
    Serial numbers are tried first; anything else goes through dateutil.
    """

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None

    serial = _parse_serial(text)
    if serial is not None:
        return serial

    try:
        return date_parser.parse(text, default=_PARSE_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def format_date(raw: DateInput) -> Optional[str]:
    parsed = parse_date(raw)
    if parsed is None:
        return None
    return parsed.strftime("%m/%d/%Y")


def to_iso_date(raw: DateInput) -> Optional[str]:
    parsed = parse_date(raw)
    if parsed is None:
        return None
    return parsed.isoformat()


def days_since(raw: DateInput, today: Optional[date] = None) -> Optional[int]:
    """Whole days from ``raw`` to ``today``.

    Future dates return None: they cannot be a completed sale.
    """

    parsed = parse_date(raw)
    if parsed is None:
        return None
    delta = ((today or date.today()) - parsed).days
    if delta < 0:
        return None
    return delta


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

STREET_TYPE_ABBREVIATIONS = MappingProxyType(
    {
        "avenue": "Ave",
        "av": "Ave",
        "ave": "Ave",
        "avn": "Ave",
        "avnue": "Ave",
        "boulevard": "Blvd",
        "blvd": "Blvd",
        "boul": "Blvd",
        "boulv": "Blvd",
        "circle": "Cir",
        "cir": "Cir",
        "circ": "Cir",
        "crcl": "Cir",
        "court": "Ct",
        "ct": "Ct",
        "crt": "Ct",
        "drive": "Dr",
        "dr": "Dr",
        "drv": "Dr",
        "lane": "Ln",
        "ln": "Ln",
        "parkway": "Pkwy",
        "pkwy": "Pkwy",
        "parkwy": "Pkwy",
        "place": "Pl",
        "pl": "Pl",
        "plz": "Pl",
        "road": "Rd",
        "rd": "Rd",
        "street": "St",
        "st": "St",
        "str": "St",
        "strt": "St",
        "suite": "Ste",
        "ste": "Ste",
        "unit": "Unit",
        "way": "Way",
        "wy": "Way",
    }
)


def normalize_address(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    parts = str(value).split()
    if not parts:
        return None

    number = None
    if _LEADING_NUMBER_RE.match(parts[0]):
        number, parts = parts[0], parts[1:]

    words = []
    for index, word in enumerate(parts):
        if index == len(parts) - 1:
            abbreviation = STREET_TYPE_ABBREVIATIONS.get(word.lower())
            if abbreviation:
                words.append(abbreviation)
                continue
        words.append(_capitalize(word))

    street = " ".join(words)
    if number is not None:
        return f"{number} {street}".strip()
    return street


def address_key(value: Optional[str]) -> Optional[str]:
    """Case-insensitive comparison form of a normalized address."""

    normalized = normalize_address(value)
    if normalized is None:
        return None
    return normalized.casefold()


# ---------------------------------------------------------------------------
# Property types
# ---------------------------------------------------------------------------


def _contains_any(*needles: str) -> Callable[[str], bool]:
    return lambda text: any(n in text for n in needles)


def _is_vacant(text: str) -> bool:
    if "vacant land" in text or "vacant lot" in text:
        return True
    return "vacant" in text and "non-vacant" not in text


# Order matters: inputs such as "Condominium Duplex" match several rules.
PROPERTY_TYPE_RULES: Tuple[Tuple[str, Callable[[str], bool]], ...] = (
    ("Condominium", _contains_any("condominium")),
    ("Duplex", _contains_any("duplex")),
    ("Triplex", _contains_any("triplex")),
    ("Fourplex", _contains_any("fourplex")),
    ("Townhouse", _contains_any("townhome", "townhouse", "town home", "town house")),
    ("Vacant Land", _is_vacant),
)

SINGLE_FAMILY = "Single Family Residential"


def normalize_property_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = str(value).strip()
    if not trimmed:
        return None
    if trimmed == SINGLE_FAMILY:
        return SINGLE_FAMILY
    lowered = trimmed.lower()
    for canonical, matches in PROPERTY_TYPE_RULES:
        if matches(lowered):
            return canonical
    return trimmed


# ---------------------------------------------------------------------------
# Counties and names
# ---------------------------------------------------------------------------


def normalize_county_name(value: Optional[str]) -> Optional[str]:
    """``"San Diego County, California"`` -> ``"San Diego"``."""

    if value is None:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", str(value)).strip()
    if "," in cleaned:
        cleaned = cleaned.split(",", 1)[0].strip()
    if cleaned.lower().endswith(" county"):
        cleaned = cleaned[: -len(" county")].strip()
    return cleaned or None


_BUSINESS_SUFFIXES = MappingProxyType(
    {
        "LLC": "LLC",
        "LLP": "LLP",
        "PLLC": "PLLC",
        "LC": "LC",
        "PC": "PC",
        "P.C": "PC",
        "LP": "LP",
        "GP": "GP",
        "INC": "Inc",
        "INCORPORATED": "Inc",
        "CORP": "Corp",
        "CORPORATION": "Corp",
    }
)


def normalize_company_name(value: Optional[str]) -> Optional[str]:
    """Canonical storage form: ``"ACME PROPERTIES, LLC."`` -> ``"Acme Properties LLC"``."""

    if value is None:
        return None
    words = []
    for word in str(value).split():
        cleaned = _TRAILING_PUNCT_RE.sub("", word)
        if not cleaned:
            continue
        suffix = _BUSINESS_SUFFIXES.get(cleaned.upper())
        words.append(suffix or _capitalize(cleaned))
    name = " ".join(words).strip()
    return name or None


def company_name_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = _COMPANY_KEY_PUNCT_RE.sub("", str(value))
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip().lower()
    return cleaned or None
