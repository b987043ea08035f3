"""
Tests for MAO input validation and the MAO calculator.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from deal_engine.comp_engine import MaoRule, ValuationInputs, calculate_mao, validate_mao_inputs
from deal_engine.comp_engine.offer import round_currency
from deal_engine.errors import ValidationError


# =============================================================================
# Test: MAO Calculation
# =============================================================================

class TestCalculateMao:
    """Tests for calculate_mao."""

    @pytest.mark.parametrize("rule,percent", [
        (MaoRule.SIXTY_FIVE, 0.65),
        (MaoRule.SEVENTY, 0.70),
        (MaoRule.SEVENTY_FIVE, 0.75),
    ])
    def test_fixed_rules(self, rule, percent):
        inputs = ValuationInputs(
            estimated_repairs=30000,
            holding_cost=5000,
            closing_cost=4000,
            wholesale_fee=10000,
            mao_rule=rule,
        )
        result = calculate_mao(300000, inputs)

        expected = 300000 * percent - 49000
        assert result.mao == round_currency(expected)
        assert result.suggested_offer == round_currency(expected * 0.95)
        assert result.rule_percent == pytest.approx(percent)
        assert result.total_fees == 49000

    def test_seventy_percent_example(self):
        inputs = ValuationInputs(estimated_repairs=40000, mao_rule=MaoRule.SEVENTY)
        result = calculate_mao(300000, inputs)

        assert result.base_mao == 210000
        assert result.mao == 170000
        assert result.suggested_offer == 161500

    def test_custom_rule(self):
        inputs = ValuationInputs(mao_rule=MaoRule.CUSTOM, mao_rule_percent=80)
        assert calculate_mao(200000, inputs).mao == 160000

    def test_negative_mao_gives_zero_offer(self):
        inputs = ValuationInputs(estimated_repairs=250000)
        result = calculate_mao(300000, inputs)

        assert result.mao == -40000
        assert result.suggested_offer == 0

    @pytest.mark.parametrize("arv", [None, 0])
    def test_no_arv(self, arv):
        assert calculate_mao(arv, ValuationInputs()) is None

    def test_rounds_half_up(self):
        assert round_currency(100.5) == 101
        assert round_currency(101.5) == 102
        assert round_currency(100.49) == 100

    def test_deterministic(self):
        inputs = ValuationInputs(estimated_repairs=12345.67, mao_rule=MaoRule.SIXTY_FIVE)
        assert calculate_mao(287654, inputs) == calculate_mao(287654, inputs)

    def test_breakdown(self):
        inputs = ValuationInputs(estimated_repairs=1000, holding_cost=200)
        breakdown = calculate_mao(100000, inputs).breakdown

        assert breakdown["arv"] == 100000
        assert breakdown["estimated_repairs"] == 1000
        assert breakdown["total_fees"] == 1200


# =============================================================================
# Test: Input Validation
# =============================================================================

class TestValidateInputs:
    """Tests for validate_mao_inputs and ValuationInputs bounds."""

    def test_defaults(self):
        inputs = validate_mao_inputs({})
        assert inputs.estimated_repairs == 0
        assert inputs.mao_rule is MaoRule.SEVENTY

    def test_default_rule_override(self):
        assert validate_mao_inputs(None, MaoRule.SEVENTY_FIVE).mao_rule is MaoRule.SEVENTY_FIVE

    def test_camel_case_and_strings(self):
        inputs = validate_mao_inputs({
            "estimatedRepairs": "25000",
            "holdingCost": 3000,
            "maoRule": "65%",
        })
        assert inputs.estimated_repairs == 25000
        assert inputs.holding_cost == 3000
        assert inputs.mao_rule is MaoRule.SIXTY_FIVE

    def test_omitted_fields_keep_base(self):
        base = ValuationInputs(estimated_repairs=40000, holding_cost=5000, closing_cost=2500)
        inputs = validate_mao_inputs({"maoRule": "65%", "wholesaleFee": 8000}, base=base)

        assert inputs.estimated_repairs == 40000
        assert inputs.holding_cost == 5000
        assert inputs.closing_cost == 2500
        assert inputs.wholesale_fee == 8000
        assert inputs.mao_rule is MaoRule.SIXTY_FIVE

    def test_base_rule_beats_default(self):
        base = ValuationInputs(mao_rule=MaoRule.SEVENTY_FIVE)
        inputs = validate_mao_inputs({"estimatedRepairs": 1000}, MaoRule.SEVENTY, base=base)
        assert inputs.mao_rule is MaoRule.SEVENTY_FIVE

    def test_base_custom_percent_kept(self):
        base = ValuationInputs(mao_rule=MaoRule.CUSTOM, mao_rule_percent=60)
        inputs = validate_mao_inputs({"holdingCost": 1000}, base=base)
        assert inputs.rule_percent == pytest.approx(0.60)

    def test_switching_to_custom_needs_percent(self):
        base = ValuationInputs(mao_rule=MaoRule.SIXTY_FIVE)
        with pytest.raises(ValidationError):
            validate_mao_inputs({"maoRule": "custom"}, base=base)

    def test_bare_rule_number_accepted(self):
        assert validate_mao_inputs({"mao_rule": "75"}).mao_rule is MaoRule.SEVENTY_FIVE

    def test_unknown_rule_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_mao_inputs({"mao_rule": "80%"})
        assert exc_info.value.field == "mao_rule"

    def test_custom_rule_requires_percent(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_mao_inputs({"mao_rule": "custom"})
        assert exc_info.value.field == "mao_rule_percent"

    @pytest.mark.parametrize("percent", [49, 91, 0, 100])
    def test_custom_percent_out_of_range(self, percent):
        with pytest.raises(ValidationError):
            validate_mao_inputs({"mao_rule": "custom", "mao_rule_percent": percent})

    @pytest.mark.parametrize("percent", [50, 90, 72.5])
    def test_custom_percent_in_range(self, percent):
        inputs = validate_mao_inputs({"maoRule": "custom", "maoRulePercent": percent})
        assert inputs.rule_percent == pytest.approx(percent / 100)

    def test_negative_money_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_mao_inputs({"holding_cost": -1})
        assert exc_info.value.field == "holding_cost"

    def test_absurd_repairs_rejected(self):
        with pytest.raises(ValidationError):
            validate_mao_inputs({"estimated_repairs": 50_000_000})

    def test_absurd_line_item_rejected(self):
        with pytest.raises(ValidationError):
            validate_mao_inputs({"wholesale_fee": 2_000_000})

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", True])
    def test_non_numeric_rejected(self, value):
        with pytest.raises(ValidationError):
            validate_mao_inputs({"closing_cost": value})

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            ValuationInputs(estimated_repairs=-5)
