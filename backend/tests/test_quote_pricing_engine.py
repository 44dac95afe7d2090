"""
test_quote_pricing_engine.py — Unit tests for the quote total calculator.

Tests cover:
  - Aircraft subtotal: derived (operator cost + commission + fees) vs stored price_total
  - Services subtotal and taxable-services subtotal
  - Federal Excise Tax (aircraft only) and service tax (taxable lines only)
  - User-managed tax lines taken verbatim; system lines never trusted
  - Recompute of system-managed tax lines (no duplicates, removed when disabled)
  - FET fee auto-calculation on the fees off -> on transition
  - Cent-exact totals and idempotence
  - Edge cases: no option, malformed numbers, zero subtotal

All tests are pure unit tests; no database or external services required.
"""

import math
from decimal import Decimal

import pytest

from app.models.quote_schemas import (
    Fee,
    QuoteOption,
    ServiceLine,
    SubtotalSource,
    TaxLine,
    TaxRules,
)
from app.services.quote_pricing_engine import (
    apply_fet_auto_calc,
    compute_quote_totals,
    default_option_fees,
    derive_aircraft_subtotal,
    edit_fee_amount,
    recompute_system_tax_lines,
    resolve_aircraft_subtotal,
    set_fees_enabled,
)


# ---------------------------------------------------------------------------
# Constants mirrored from app.config (for assertion math)
# ---------------------------------------------------------------------------
FET_RATE = 0.075
SERVICE_TAX_RATE = 0.075
FET_LINE_ID = "system:fet"
SERVICE_TAX_LINE_ID = "system:service-tax"


def _cents(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


# ===========================================================================
# Class 1: Worked scenarios
# ===========================================================================

class TestScenarios:

    def test_scenario_a_fees_disabled(self, scenario_a_option, catering_service, default_rules):
        """
        operator 10000 + commission 500 = 10500 aircraft
        services 2 x 150 = 300
        FET 7.5% x 10500 = 787.50 ; service tax 7.5% x 300 = 22.50
        grand total = 10800 + 810 = 11610.00
        """
        totals = compute_quote_totals(scenario_a_option, [catering_service], [], default_rules)
        assert totals.aircraft_subtotal == 10500.0
        assert totals.aircraft_subtotal_source == SubtotalSource.DERIVED
        assert totals.services_subtotal == 300.0
        assert totals.subtotal == 10800.0
        assert totals.federal_excise_tax == 787.50
        assert totals.service_tax == 22.50
        assert totals.other_taxes_total == 0.0
        assert totals.tax_total == 810.00
        assert totals.grand_total == 11610.00

    def test_scenario_b_fees_enabled(self, scenario_a_option, catering_service, default_rules):
        """
        One 4.30 fee enabled: aircraft 10504.30
        FET 10504.30 x 0.075 = 787.8225 -> 787.82
        tax total 787.82 + 22.50 = 810.32 ; grand total 10804.30 + 810.32 = 11614.62
        """
        option = scenario_a_option.model_copy(update={
            "fees_enabled": True,
            "fees": [Fee(id="f1", name="US Domestic Segment Fee", amount=4.30)],
        })
        totals = compute_quote_totals(option, [catering_service], [], default_rules)
        assert totals.aircraft_subtotal == 10504.30
        assert totals.federal_excise_tax == 787.82
        assert totals.tax_total == 810.32
        assert totals.grand_total == 11614.62

    def test_scenario_d_non_taxable_service(self, scenario_a_option, default_rules):
        """A taxable:false line counts in services_subtotal but not in service_tax."""
        services = [
            ServiceLine(id="s1", name="Catering", qty=2, unit_price=150, taxable=True),
            ServiceLine(id="s2", name="Ground transport", qty=1, unit_price=400, taxable=False),
        ]
        totals = compute_quote_totals(scenario_a_option, services, [], default_rules)
        assert totals.services_subtotal == 700.0
        assert totals.taxable_services_subtotal == 300.0
        assert totals.service_tax == 22.50

    def test_only_non_taxable_services_emit_no_service_tax(self, scenario_a_option, default_rules):
        services = [ServiceLine(id="s", qty=1, unit_price=400, taxable=False)]
        totals = compute_quote_totals(scenario_a_option, services, [], default_rules)
        assert totals.service_tax == 0.0
        assert [t.id for t in totals.tax_lines] == [FET_LINE_ID]


# ===========================================================================
# Class 2: Aircraft subtotal sources
# ===========================================================================

class TestAircraftSubtotal:

    def test_derived_when_no_stored_total(self):
        option = QuoteOption(
            id="o", operator_cost=8000, commission=1200, fees_enabled=True,
            fees=[Fee(id="a", amount=4.3), Fee(id="b", amount=19.1)],
        )
        assert resolve_aircraft_subtotal(option) == (9223.4, SubtotalSource.DERIVED)

    def test_disabled_fees_are_ignored(self):
        option = QuoteOption(
            id="o", operator_cost=8000, commission=1200, fees_enabled=False,
            fees=[Fee(id="a", amount=4.3)],
        )
        assert derive_aircraft_subtotal(option) == 9200.0

    def test_stored_price_total_wins(self):
        option = QuoteOption(id="o", operator_cost=8000, commission=1200, price_total=9500)
        value, source = resolve_aircraft_subtotal(option)
        assert value == 9500.0
        assert source == SubtotalSource.STORED_TOTAL

    def test_stored_zero_counts_as_present(self):
        option = QuoteOption(id="o", operator_cost=8000, price_total=0)
        assert resolve_aircraft_subtotal(option) == (0.0, SubtotalSource.STORED_TOTAL)

    @pytest.mark.parametrize("stored", [None, "", math.nan])
    def test_empty_stored_total_falls_back_to_derived(self, stored):
        option = QuoteOption.model_validate({
            "id": "o", "operator_cost": 100, "commission": 25, "price_total": stored,
        })
        assert resolve_aircraft_subtotal(option) == (125.0, SubtotalSource.DERIVED)

    def test_no_option_prices_services_only(self, catering_service, default_rules):
        totals = compute_quote_totals(None, [catering_service], [], default_rules)
        assert totals.aircraft_subtotal == 0.0
        assert totals.federal_excise_tax == 0.0
        assert totals.grand_total == 322.50


# ===========================================================================
# Class 3: Tax composition
# ===========================================================================

class TestTaxComposition:

    def test_fet_never_applies_to_services(self, default_rules):
        option = QuoteOption(id="o", operator_cost=0, commission=0)
        services = [ServiceLine(id="s", qty=1, unit_price=1000)]
        totals = compute_quote_totals(option, services, [], default_rules)
        assert totals.federal_excise_tax == 0.0
        assert totals.service_tax == 75.0

    def test_fet_disabled(self, scenario_a_option, catering_service):
        rules = TaxRules(fet_enabled=False)
        totals = compute_quote_totals(scenario_a_option, [catering_service], [], rules)
        assert totals.federal_excise_tax == 0.0
        assert totals.tax_total == 22.50
        assert FET_LINE_ID not in [t.id for t in totals.tax_lines]

    def test_user_taxes_are_taken_verbatim(self, scenario_a_option, catering_service, default_rules):
        user = [
            TaxLine(id="u1", name="Airport handling", amount=125.255),
            TaxLine(id="u2", name="Landing permit", amount=50),
        ]
        totals = compute_quote_totals(scenario_a_option, [catering_service], user, default_rules)
        assert totals.other_taxes_total == 175.26
        assert totals.tax_total == round(787.50 + 22.50 + 175.26, 2)

    def test_stale_system_lines_in_input_are_ignored(self, scenario_a_option, catering_service, default_rules):
        stale = [TaxLine(id=FET_LINE_ID, name="FET", amount=1.00)]
        totals = compute_quote_totals(scenario_a_option, [catering_service], stale, default_rules)
        assert totals.other_taxes_total == 0.0
        assert totals.federal_excise_tax == 787.50
        assert [t.amount for t in totals.tax_lines if t.id == FET_LINE_ID] == [787.50]

    def test_custom_rates(self, scenario_a_option, catering_service):
        rules = TaxRules(federal_excise_tax_rate=0.10, service_tax_rate=0.05)
        totals = compute_quote_totals(scenario_a_option, [catering_service], [], rules)
        assert totals.federal_excise_tax == 1050.0
        assert totals.service_tax == 15.0

    def test_malformed_inputs_count_as_zero(self, default_rules):
        option = QuoteOption.model_validate({
            "id": "o", "operator_cost": None, "commission": "", "fees_enabled": True,
            "fees": [{"id": "f", "amount": None}],
        })
        services = [ServiceLine.model_validate({"id": "s", "qty": None, "unit_price": ""})]
        totals = compute_quote_totals(option, services, [TaxLine(id="u", amount=None)], default_rules)
        assert totals.grand_total == 0.0
        assert totals.tax_lines == [TaxLine(id="u", amount=None)]

    def test_grand_total_is_cent_exact(self, default_rules):
        """Awkward values: the displayed lines always re-sum to the totals."""
        option = QuoteOption(
            id="o", operator_cost=12345.67, commission=987.65, fees_enabled=True,
            fees=[Fee(id="a", amount=4.3), Fee(id="b", amount=19.1), Fee(id="c", amount=0.01)],
        )
        services = [
            ServiceLine(id="s1", qty=3, unit_price=33.33),
            ServiceLine(id="s2", qty=1, unit_price=0.07, taxable=False),
        ]
        user = [TaxLine(id="u", amount=12.34)]
        totals = compute_quote_totals(option, services, user, default_rules)

        assert _cents(totals.subtotal) == _cents(totals.aircraft_subtotal) + _cents(totals.services_subtotal)
        assert _cents(totals.tax_total) == sum(_cents(t.amount) for t in totals.tax_lines)
        assert _cents(totals.grand_total) == _cents(totals.subtotal) + _cents(totals.tax_total)

    def test_services_subtotal_is_sum_of_rounded_lines(self, default_rules):
        """
        Two half-cent lines: each line shows 0.01, so the subtotal is 0.02
        (not round(0.005 + 0.005) = 0.01).
        """
        services = [
            ServiceLine(id="s1", qty=1, unit_price=0.005),
            ServiceLine(id="s2", qty=1, unit_price=0.005),
        ]
        totals = compute_quote_totals(None, services, [], default_rules)
        assert totals.services_subtotal == 0.02
        assert totals.taxable_services_subtotal == 0.02
        assert totals.subtotal == 0.02

    def test_taxable_subtotal_uses_rounded_lines(self, default_rules):
        """
        3 x 33.333 = 99.999 -> line 100.00 ; 1 x 10.005 -> 10.01 (non-taxable)
        service tax 7.5% x 100.00 = 7.50
        """
        services = [
            ServiceLine(id="s1", qty=3, unit_price=33.333),
            ServiceLine(id="s2", qty=1, unit_price=10.005, taxable=False),
        ]
        totals = compute_quote_totals(None, services, [], default_rules)
        assert totals.services_subtotal == 110.01
        assert totals.taxable_services_subtotal == 100.0
        assert totals.service_tax == 7.50

    def test_idempotent(self, scenario_a_option, catering_service, default_rules):
        user = [TaxLine(id="u", name="Permit", amount=10)]
        first = compute_quote_totals(scenario_a_option, [catering_service], user, default_rules)
        second = compute_quote_totals(scenario_a_option, [catering_service], user, default_rules)
        assert first.model_dump() == second.model_dump()


# ===========================================================================
# Class 4: System tax line recompute
# ===========================================================================

class TestSystemTaxLines:

    def test_adds_both_system_lines_before_user_lines(self, default_rules):
        user = [TaxLine(id="u1", name="Permit", amount=40)]
        lines = recompute_system_tax_lines(user, 10500, 300, default_rules)
        assert [t.id for t in lines] == [FET_LINE_ID, SERVICE_TAX_LINE_ID, "u1"]
        assert lines[0].amount == 787.50
        assert lines[1].amount == 22.50

    def test_replaces_not_duplicates(self, default_rules):
        lines = recompute_system_tax_lines([], 10500, 300, default_rules)
        lines = recompute_system_tax_lines(lines, 10504.30, 300, default_rules)
        lines = recompute_system_tax_lines(lines, 10504.30, 300, default_rules)
        assert [t.id for t in lines].count(FET_LINE_ID) == 1
        assert [t.id for t in lines].count(SERVICE_TAX_LINE_ID) == 1
        assert next(t for t in lines if t.id == FET_LINE_ID).amount == 787.82

    def test_disabled_toggle_removes_line(self, default_rules):
        lines = recompute_system_tax_lines([], 10500, 300, default_rules)
        lines = recompute_system_tax_lines(lines, 10500, 300, TaxRules(service_tax_enabled=False))
        assert [t.id for t in lines] == [FET_LINE_ID]

    def test_zero_subtotals_emit_no_system_lines(self, default_rules):
        user = [TaxLine(id="u", amount=5)]
        assert [t.id for t in recompute_system_tax_lines(user, 0, 0, default_rules)] == ["u"]

    def test_user_lines_untouched(self, default_rules):
        user = [TaxLine(id="u2", name="B", amount=2.5), TaxLine(id="u1", name="A", amount=1)]
        lines = recompute_system_tax_lines(user, 1000, 0, default_rules)
        assert lines[1:] == user
        assert user == [TaxLine(id="u2", name="B", amount=2.5), TaxLine(id="u1", name="A", amount=1)]


# ===========================================================================
# Class 5: FET fee auto-calculation
# ===========================================================================

class TestFetAutoCalc:

    def test_scenario_c_one_shot_then_manual_edit_sticks(self, fet_fee):
        """
        Enable fees with operator cost 8000 -> FET fee 600.00.
        Manual edit to 650.00 stops auto-calculation; cycling the toggle keeps 650.00.
        """
        option = QuoteOption(id="o", operator_cost=8000, fees=[fet_fee], fees_enabled=False)

        option = set_fees_enabled(option, True)
        assert option.fees[0].amount == 600.00
        assert option.fees[0].is_auto_calculated is True

        option = option.model_copy(update={"fees": edit_fee_amount(option.fees, "fee-fet", 650.00)})
        assert option.fees[0].amount == 650.00
        assert option.fees[0].is_auto_calculated is False

        option = set_fees_enabled(option, False)
        option = set_fees_enabled(option, True)
        assert option.fees[0].amount == 650.00

    def test_only_fires_on_off_to_on_transition(self, fet_fee):
        option = QuoteOption(id="o", operator_cost=8000, fees=[fet_fee], fees_enabled=False)
        option = set_fees_enabled(option, True)
        option = option.model_copy(update={"operator_cost": 10000})
        option = set_fees_enabled(option, True)     # already on: no recompute
        assert option.fees[0].amount == 600.00

    def test_missing_fet_fee_is_a_no_op(self):
        fees = [Fee(id="a", name="US Domestic Segment Fee", amount=4.3)]
        assert apply_fet_auto_calc(fees, 8000) == fees

    def test_name_must_match_exactly(self):
        fees = [Fee(id="a", name="FET", amount=0, is_auto_calculated=True)]
        assert apply_fet_auto_calc(fees, 8000)[0].amount == 0

    def test_returns_new_list_without_mutating_input(self, fet_fee):
        fees = [fet_fee]
        updated = apply_fet_auto_calc(fees, 8000)
        assert updated is not fees
        assert fet_fee.amount == 0
        assert updated[0].amount == 600.0

    def test_rounds_to_cents(self, fet_fee):
        assert apply_fet_auto_calc([fet_fee], 1234.57)[0].amount == 92.59

    def test_default_fees(self):
        fees = default_option_fees()
        assert [(f.name, f.amount, f.is_auto_calculated) for f in fees] == [
            ("US Domestic Segment Fee", 4.30, False),
            ("US International Head Tax", 19.10, False),
            ("Federal Excise Tax (FET)", 0.00, True),
        ]
        assert len({f.id for f in fees}) == 3
