"""
conftest.py — Shared pytest fixtures for the Charter Quote API test suite.

No database or external service fixtures are defined here. The engine tests
are pure unit tests; the API tests drive the FastAPI app in-process through
``fastapi.testclient.TestClient``.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``app.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any app imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


# ---------------------------------------------------------------------------
# Aircraft fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def citation_model():
    """Mid-size jet model: 8 pax, 2500 nm, 440 kts."""
    from app.models.quote_schemas import AircraftModel
    return AircraftModel(
        id="model-citation-xls",
        name="Citation XLS+",
        manufacturer="Cessna",
        category="Midsize Jet",
        default_capacity=8,
        default_range_nm=2500,
        default_speed_knots=440,
    )


@pytest.fixture
def plain_tail():
    """Tail with no overrides at all."""
    from app.models.quote_schemas import AircraftTail
    return AircraftTail(id="tail-1", model_id="model-citation-xls", tail_number="N512XL")


# ---------------------------------------------------------------------------
# Pricing fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def default_rules():
    """FET 7.5% and service tax 7.5%, both enabled."""
    from app.models.quote_schemas import TaxRules
    return TaxRules()


@pytest.fixture
def scenario_a_option():
    """operator_cost=10000, commission=500, fees disabled."""
    from app.models.quote_schemas import QuoteOption
    return QuoteOption(
        id="opt-a",
        label="Option 1",
        aircraft_model_id="model-citation-xls",
        flight_hours=2.5,
        operator_cost=10000,
        commission=500,
        fees_enabled=False,
    )


@pytest.fixture
def catering_service():
    """qty 2 x 150.00, taxable."""
    from app.models.quote_schemas import ServiceLine
    return ServiceLine(id="svc-catering", name="Catering", qty=2, unit_price=150, taxable=True)


@pytest.fixture
def fet_fee():
    """Auto-calculated FET fee at 0.00."""
    from app.models.quote_schemas import Fee
    return Fee(id="fee-fet", name="Federal Excise Tax (FET)", amount=0, is_auto_calculated=True)


@pytest.fixture
def draft_quote(scenario_a_option, catering_service):
    """Publishable draft: one leg, one option, one service, expiry far ahead."""
    from datetime import datetime, timezone
    from app.models.quote_schemas import Leg, Quote
    return Quote(
        id="quote-1",
        contact_id="contact-1",
        title="TEB -> PBI",
        legs=[Leg(
            origin="Teterboro",
            origin_code="KTEB",
            destination="Palm Beach Intl",
            destination_code="KPBI",
            departure_date="2030-01-15",
            departure_time="09:00",
            passengers=4,
        )],
        options=[scenario_a_option],
        services=[catering_service],
        valid_until=datetime(2030, 1, 10, tzinfo=timezone.utc),
    )


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def client():
    """In-process client for the FastAPI app (no network, no database)."""
    from fastapi.testclient import TestClient
    from app.main import app
    with TestClient(app) as c:
        yield c
