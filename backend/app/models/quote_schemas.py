"""
Quote, aircraft and pricing payload models.

These are the shapes exchanged between the UI / document layers and the
pricing engines. Numeric fields are deliberately lenient (blank strings and
nulls are accepted) because rows arrive from several editors that do not
agree on representation; the engines treat anything non-numeric as zero.
"""
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from app.config import (
    FEDERAL_EXCISE_TAX_RATE,
    MAX_PASSENGERS_PER_LEG,
    SERVICE_TAX_RATE,
    SYSTEM_TAX_PREFIX,
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


# Optional float that also accepts "" from form editors
LenientFloat = Annotated[Optional[float], BeforeValidator(_blank_to_none)]


# ── Aircraft ─────────────────────────────────────────────────────────────────

class AircraftModel(BaseModel):
    """Catalog entry. Archived instead of deleted once tails reference it."""
    id: str
    name: str = ""
    manufacturer: Optional[str] = None
    category: Optional[str] = None
    default_capacity: LenientFloat = None      # passengers
    default_range_nm: LenientFloat = None      # nautical miles
    default_speed_knots: LenientFloat = None   # cruise, knots
    is_archived: bool = False


class TailStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AircraftTail(BaseModel):
    """A registered aircraft. A null override means "use the model default"."""
    model_config = {"protected_namespaces": ()}

    id: str
    model_id: Optional[str] = None
    tail_number: str = ""
    operator_id: Optional[str] = None
    capacity_override: LenientFloat = None
    range_nm_override: LenientFloat = None
    speed_knots_override: LenientFloat = None
    status: TailStatus = TailStatus.ACTIVE
    images: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)


class SpecSource(str, Enum):
    TAIL_OVERRIDE = "tail_override"
    MODEL_DEFAULT = "model_default"
    UNKNOWN = "unknown"


class ResolvedValue(BaseModel):
    value: Optional[float] = None
    source: SpecSource = SpecSource.UNKNOWN

    @property
    def is_overridden(self) -> bool:
        return self.source == SpecSource.TAIL_OVERRIDE


class EffectiveAircraftSpec(BaseModel):
    """Derived, never persisted. None means unknown and must not be shown as 0."""
    capacity: Optional[float] = None
    range_nm: Optional[float] = None
    speed_knots: Optional[float] = None
    is_capacity_overridden: bool = False
    is_range_overridden: bool = False
    is_speed_overridden: bool = False
    sources: Dict[str, SpecSource] = Field(default_factory=lambda: {
        "capacity": SpecSource.UNKNOWN,
        "range_nm": SpecSource.UNKNOWN,
        "speed_knots": SpecSource.UNKNOWN,
    })


# ── Pricing inputs ───────────────────────────────────────────────────────────

class Fee(BaseModel):
    """Flat per-option fee. is_auto_calculated flips to False on manual edit."""
    id: str
    name: str = ""
    amount: LenientFloat = 0.0
    is_auto_calculated: bool = False
    description: Optional[str] = None


class QuoteOption(BaseModel):
    id: str
    label: str = ""
    aircraft_model_id: Optional[str] = None
    aircraft_tail_id: Optional[str] = None
    flight_hours: LenientFloat = 0.0
    operator_cost: LenientFloat = 0.0
    commission: LenientFloat = 0.0
    fees: List[Fee] = Field(default_factory=list)
    fees_enabled: bool = False
    selected_amenities: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    price_total: LenientFloat = None   # stored total; wins over the derived sum


class ServiceLine(BaseModel):
    id: str
    item_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    qty: LenientFloat = 1
    unit_price: LenientFloat = 0.0
    taxable: Optional[bool] = True


class TaxLine(BaseModel):
    id: str
    name: str = ""
    amount: LenientFloat = 0.0

    @property
    def is_system_managed(self) -> bool:
        return self.id.startswith(SYSTEM_TAX_PREFIX)


class TaxRules(BaseModel):
    """Toggle state is owned by the caller; the engines only react to it."""
    federal_excise_tax_rate: float = FEDERAL_EXCISE_TAX_RATE
    service_tax_rate: float = SERVICE_TAX_RATE
    fet_enabled: bool = True
    service_tax_enabled: bool = True


# ── Pricing outputs ──────────────────────────────────────────────────────────

class SubtotalSource(str, Enum):
    STORED_TOTAL = "stored_total"
    DERIVED = "derived"


class QuoteTotals(BaseModel):
    aircraft_subtotal: float = 0.0
    aircraft_subtotal_source: SubtotalSource = SubtotalSource.DERIVED
    services_subtotal: float = 0.0
    taxable_services_subtotal: float = 0.0
    subtotal: float = 0.0
    federal_excise_tax: float = 0.0
    service_tax: float = 0.0
    other_taxes_total: float = 0.0
    tax_total: float = 0.0
    grand_total: float = 0.0
    tax_lines: List[TaxLine] = Field(default_factory=list)

    model_config = {"json_schema_extra": {
        "example": {
            "aircraft_subtotal": 10500.0,
            "aircraft_subtotal_source": "derived",
            "services_subtotal": 300.0,
            "taxable_services_subtotal": 300.0,
            "subtotal": 10800.0,
            "federal_excise_tax": 787.5,
            "service_tax": 22.5,
            "other_taxes_total": 0.0,
            "tax_total": 810.0,
            "grand_total": 11610.0,
        }
    }}


# ── Quote aggregate ──────────────────────────────────────────────────────────

class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    OPENED = "opened"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    INVOICED = "invoiced"
    EXPIRED = "expired"


class Leg(BaseModel):
    origin: str
    origin_code: str = ""
    destination: str
    destination_code: str = ""
    departure_date: str
    departure_time: Optional[str] = None
    passengers: int = Field(1, ge=1, le=MAX_PASSENGERS_PER_LEG)


class Quote(BaseModel):
    id: str
    contact_id: Optional[str] = None
    title: str = ""
    status: QuoteStatus = QuoteStatus.DRAFT
    legs: List[Leg] = Field(default_factory=list)
    options: List[QuoteOption] = Field(default_factory=list)
    services: List[ServiceLine] = Field(default_factory=list)
    taxes: List[TaxLine] = Field(default_factory=list)
    selected_option_id: Optional[str] = None
    valid_until: Optional[datetime] = None
    published_at: Optional[datetime] = None
    token: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _legacy_status(cls, value: Any) -> Any:
        from app.services.quote_lifecycle import normalize_status
        return normalize_status(value)

    def get_option(self, option_id: Optional[str]) -> Optional[QuoteOption]:
        if not option_id:
            return None
        for option in self.options:
            if option.id == option_id:
                return option
        return None
