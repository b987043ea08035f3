"""
MAO (Maximum Allowable Offer) calculation and input validation.
"""

from __future__ import annotations

import math
from typing import Any, Final, Mapping, Optional

from deal_engine.errors import ValidationError

from .models import MAOResult, MaoRule, ValuationInputs


# Negotiation buffer applied to MAO for the suggested offer
SUGGESTED_OFFER_FACTOR = 0.95

# Accepted request keys -> ValuationInputs field
INPUT_ALIASES: Final[dict[str, str]] = {
    "estimatedRepairs": "estimated_repairs",
    "holdingCost": "holding_cost",
    "closingCost": "closing_cost",
    "wholesaleFee": "wholesale_fee",
    "maoRule": "mao_rule",
    "maoRulePercent": "mao_rule_percent",
}

MONEY_FIELDS: Final[tuple[str, ...]] = (
    "estimated_repairs",
    "holding_cost",
    "closing_cost",
    "wholesale_fee",
)


def round_currency(value: float) -> int:
    """Round to the nearest whole currency unit, halves up."""
    return int(math.floor(value + 0.5))


def _parse_number(field_name: str, value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(field_name, "must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(field_name, f"must be a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(field_name, "must be a finite number")
    return number


def validate_mao_inputs(
    raw: Optional[Mapping[str, Any]],
    default_rule: MaoRule = MaoRule.SEVENTY,
    base: Optional[ValuationInputs] = None,
) -> ValuationInputs:
    """
    Parse and validate raw MAO inputs.

    Accepts camelCase or snake_case keys and numeric strings. Fields the
    payload leaves out keep their value from base; without a base, money
    fields default to 0 and the rule to default_rule.

    Args:
        raw: Request payload
        default_rule: Rule used when none is supplied and there is no base
        base: Stored inputs the payload is applied on top of

    Returns:
        Validated ValuationInputs

    Raises:
        ValidationError: If any value is malformed or out of range
    """
    data: dict[str, Any] = {}
    for key, value in (raw or {}).items():
        data[INPUT_ALIASES.get(key, key)] = value

    values: dict[str, Any] = {}
    for name in MONEY_FIELDS:
        number = _parse_number(name, data.get(name))
        if number is None:
            number = getattr(base, name) if base is not None else 0.0
        values[name] = number

    raw_rule = data.get("mao_rule")
    if raw_rule is None or raw_rule == "":
        rule = base.mao_rule if base is not None else default_rule
    else:
        rule = MaoRule.from_string(str(raw_rule))
        if rule is None:
            allowed = ", ".join(r.value for r in MaoRule)
            raise ValidationError("mao_rule", f"must be one of {allowed}, got {raw_rule!r}")

    percent = _parse_number("mao_rule_percent", data.get("mao_rule_percent"))
    if percent is None and base is not None and rule is base.mao_rule:
        percent = base.mao_rule_percent

    return ValuationInputs(mao_rule=rule, mao_rule_percent=percent, **values)


def calculate_mao(arv: Optional[float], inputs: ValuationInputs) -> Optional[MAOResult]:
    """
    Calculate the maximum allowable offer.

    mao = arv x rule percent - (repairs + holding + closing + wholesale fee)
    suggested offer = max(0, mao x 0.95)

    Args:
        arv: After-repair value
        inputs: Validated cost assumptions

    Returns:
        MAOResult in whole currency units, or None if arv is missing or zero
    """
    if not arv:
        return None

    rule_percent = inputs.rule_percent
    base_mao = arv * rule_percent
    total_fees = inputs.total_fees
    mao = base_mao - total_fees
    suggested_offer = max(0.0, mao * SUGGESTED_OFFER_FACTOR)

    return MAOResult(
        mao=round_currency(mao),
        suggested_offer=round_currency(suggested_offer),
        base_mao=round_currency(base_mao),
        total_fees=round_currency(total_fees),
        rule_percent=rule_percent,
        breakdown={
            "arv": arv,
            "rule_percent": rule_percent,
            "base_mao": round_currency(base_mao),
            "estimated_repairs": inputs.estimated_repairs,
            "holding_cost": inputs.holding_cost,
            "closing_cost": inputs.closing_cost,
            "wholesale_fee": inputs.wholesale_fee,
            "total_fees": round_currency(total_fees),
        },
    )
