"""
Aircraft effective-specification resolver.

Covers:
  - Tail override vs model default resolution for capacity, range and speed
  - Source tagging so callers can show which value was overridden
  - Tail-number uniqueness and model deletion guards for the aircraft catalog

Pure functions only: nothing here touches the database.
"""

from typing import Any, Dict, Iterable, Optional

from app.config import UNKNOWN_SPEC_LABEL
from app.models.quote_schemas import (
    AircraftModel,
    AircraftTail,
    EffectiveAircraftSpec,
    ResolvedValue,
    SpecSource,
)
from app.services.money import is_number
from app.services.perf_monitor import timed


# attribute -> (tail override field, model default field)
_SPEC_FIELDS: Dict[str, tuple] = {
    "capacity": ("capacity_override", "default_capacity"),
    "range_nm": ("range_nm_override", "default_range_nm"),
    "speed_knots": ("speed_knots_override", "default_speed_knots"),
}

_OVERRIDE_FLAGS: Dict[str, str] = {
    "capacity": "is_capacity_overridden",
    "range_nm": "is_range_overridden",
    "speed_knots": "is_speed_overridden",
}


def resolve_attribute(override: Any, default: Any) -> ResolvedValue:
    """
    One tagged resolution step.

    A real number on the tail wins (zero included). Otherwise the model
    default is used; if that is missing too the value stays unknown.
    """
    if is_number(override):
        return ResolvedValue(value=float(override), source=SpecSource.TAIL_OVERRIDE)
    if is_number(default):
        return ResolvedValue(value=float(default), source=SpecSource.MODEL_DEFAULT)
    return ResolvedValue(value=None, source=SpecSource.UNKNOWN)


@timed
def resolve_effective_spec(
    model: Optional[AircraftModel],
    tail: Optional[AircraftTail],
) -> EffectiveAircraftSpec:
    """
    Effective capacity / range / cruise speed for a (model, tail) pair.

    Either argument may be None when no aircraft is selected yet; the result
    is then partially or fully unknown, never an error.
    """
    values: Dict[str, Any] = {}
    sources: Dict[str, SpecSource] = {}

    for attr, (override_field, default_field) in _SPEC_FIELDS.items():
        override = getattr(tail, override_field, None) if tail is not None else None
        default = getattr(model, default_field, None) if model is not None else None
        resolved = resolve_attribute(override, default)
        values[attr] = resolved.value
        values[_OVERRIDE_FLAGS[attr]] = resolved.is_overridden
        sources[attr] = resolved.source

    return EffectiveAircraftSpec(**values, sources=sources)


def describe_spec(spec: EffectiveAircraftSpec) -> Dict[str, str]:
    """Display strings for a resolved spec. Unknown values never render as 0."""

    def _fmt(value: Optional[float], unit: str, overridden: bool) -> str:
        if value is None:
            return UNKNOWN_SPEC_LABEL
        number = int(value) if float(value).is_integer() else value
        text = f"{number:,} {unit}".strip()
        return f"{text} (tail override)" if overridden else text

    return {
        "capacity": _fmt(spec.capacity, "pax", spec.is_capacity_overridden),
        "range": _fmt(spec.range_nm, "nm", spec.is_range_overridden),
        "speed": _fmt(spec.speed_knots, "kts", spec.is_speed_overridden),
    }


# ---------------------------------------------------------------------------
# Catalog guards
# ---------------------------------------------------------------------------

def validate_unique_tail_number(
    tail_number: str,
    existing_tails: Iterable[AircraftTail],
    exclude_id: Optional[str] = None,
) -> bool:
    """Case-insensitive uniqueness; the tail being edited is excluded."""
    wanted = (tail_number or "").strip().lower()
    for tail in existing_tails:
        if tail.id == exclude_id:
            continue
        if (tail.tail_number or "").strip().lower() == wanted:
            return False
    return True


def can_delete_model(model_id: str, tails: Iterable[AircraftTail]) -> bool:
    """A model may only be deleted while no tail references it; otherwise archive it."""
    return not any(t.model_id == model_id for t in tails)
