from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class ProviderRecord(BaseModel):
    """One row of the provider's buyers-market feed, loosely typed.

    Field names follow the provider's camelCase payload; snake_case names are
    accepted too so fixtures can be written either way.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("zipCode", "zip_code", "zip")
    )
    owner_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("buyerName", "owner_name")
    )
    ownership_code: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("buyerOwnershipCode", "ownership_code"),
    )
    seller_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("sellerName", "seller_name")
    )
    property_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("propertyType", "property_type")
    )
    price: Optional[float] = None
    sale_value: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("saleValue", "sale_value")
    )
    sale_date: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("saleDate", "sale_date")
    )
    recording_date: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("recordingDate", "recording_date"),
    )
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    county: Optional[str] = None
    msa: Optional[str] = None

    @field_validator(
        "address",
        "city",
        "state",
        "zip",
        "owner_name",
        "ownership_code",
        "seller_name",
        "property_type",
        "sale_date",
        "recording_date",
        "county",
        "msa",
        mode="before",
    )
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("price", "sale_value", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.replace(",", "").replace("$", "").strip()
            return cleaned or None
        return value

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coordinate(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(frozen=True)
class PropertyRecord:
    city_code: str
    address: str
    normalized_address: str
    county: str
    msa: str
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    owner_name: Optional[str] = None
    ownership_code: Optional[str] = None
    owner_is_company: bool = False
    seller_name: Optional[str] = None
    seller_is_company: bool = False
    property_type_raw: Optional[str] = None
    property_type: Optional[str] = None
    price: float = 0
    purchase_price: Optional[float] = None
    sale_date: Optional[str] = None  # YYYY-MM-DD
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Fields compared on upsert; a difference in any of them is an update.
TRACKED_FIELDS = (
    "address",
    "city",
    "state",
    "zip",
    "owner_name",
    "ownership_code",
    "owner_is_company",
    "seller_name",
    "seller_is_company",
    "property_type_raw",
    "property_type",
    "price",
    "purchase_price",
    "sale_date",
    "county",
    "msa",
    "latitude",
    "longitude",
)


@dataclass(frozen=True)
class CompanyContact:
    company_name: str
    counties: List[str] = field(default_factory=list)
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class SyncState:
    city_code: str
    msa: str
    last_successful_date: str  # YYYY-MM-DD
    processed: int = 0
    inserted: int = 0
    updated: int = 0
    contacts_added: int = 0
    total_records_synced: int = 0
    last_sync_at: Optional[str] = None
