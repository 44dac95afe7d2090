"""
Aircraft specification routes

POST /api/aircraft/effective-spec          — resolve tail overrides onto model defaults
POST /api/aircraft/tail-number/validate    — case-insensitive tail number uniqueness
POST /api/aircraft/models/can-delete       — delete vs archive guard for a model
"""
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.models.quote_schemas import AircraftModel, AircraftTail, EffectiveAircraftSpec
from app.services.aircraft_spec_engine import (
    can_delete_model,
    describe_spec,
    resolve_effective_spec,
    validate_unique_tail_number,
)

router = APIRouter(prefix="/api/aircraft", tags=["Aircraft"])


# ── Pydantic Models ─────────────────────────────────────────────────────────

class EffectiveSpecRequest(BaseModel):
    model: Optional[AircraftModel] = None
    tail: Optional[AircraftTail] = None


class EffectiveSpecResponse(EffectiveAircraftSpec):
    display: dict = {}


class TailNumberRequest(BaseModel):
    tail_number: str = Field(..., min_length=1)
    existing_tails: List[AircraftTail] = []
    exclude_id: Optional[str] = None


class ModelDeleteRequest(BaseModel):
    model_config = {"protected_namespaces": ()}

    model_id: str
    tails: List[AircraftTail] = []


# ── Routes ───────────────────────────────────────────────────────────────────

@router.post("/effective-spec", response_model=EffectiveSpecResponse)
async def effective_spec(req: EffectiveSpecRequest):
    """Effective capacity / range / speed, with per-attribute override flags."""
    spec = resolve_effective_spec(req.model, req.tail)
    return EffectiveSpecResponse(**spec.model_dump(), display=describe_spec(spec))


@router.post("/tail-number/validate")
async def validate_tail_number(req: TailNumberRequest):
    is_unique = validate_unique_tail_number(req.tail_number, req.existing_tails, req.exclude_id)
    return {"tail_number": req.tail_number, "is_unique": is_unique}


@router.post("/models/can-delete")
async def model_can_delete(req: ModelDeleteRequest):
    allowed = can_delete_model(req.model_id, req.tails)
    return {
        "model_id": req.model_id,
        "can_delete": allowed,
        "action": "delete" if allowed else "archive",
    }
