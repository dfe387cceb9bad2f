"""保价费核算：费用 = max(声明价值 × 费率, 最低收费)。"""

from __future__ import annotations

from typing import Sequence

from bill_verifier.modules.reconcile.models import CalcOutcome, InsuranceRule, round_money, to_float

INSURANCE_CATEGORY = "保价"
GENERIC_KEYWORD = "保价"


def select_insurance_rule(remark: str, rules: Sequence[InsuranceRule]) -> InsuranceRule | None:
    remark = remark or ""
    for rule in rules:
        if rule.service_keyword and rule.service_keyword in remark:
            return rule
    for rule in rules:
        if rule.service_keyword == GENERIC_KEYWORD:
            return rule
    return rules[0] if rules else None


def calculate_insurance(declared_value_text: str, remark: str, rules: Sequence[InsuranceRule]) -> CalcOutcome:
    declared_text = (declared_value_text or "").strip()
    if not declared_text:
        return CalcOutcome(
            theoretical_amount=0.0,
            category=INSURANCE_CATEGORY,
            insurance_detail="无声明价值",
            result_text="无法核算(缺失声明价值)",
        )

    declared_value = to_float(declared_text)
    if not declared_value:
        return CalcOutcome(
            theoretical_amount=0.0,
            category=INSURANCE_CATEGORY,
            insurance_detail=f"声明价值:{declared_text}",
            result_text="声明价值为0",
        )

    rule = select_insurance_rule(remark, rules)
    if rule is None:
        return CalcOutcome(
            theoretical_amount=0.0,
            category=INSURANCE_CATEGORY,
            insurance_detail="无保价标准",
            reason_text="未配置保价费率",
        )

    fee = round_money(max(declared_value * rule.rate, rule.min_fee))
    return CalcOutcome(
        theoretical_amount=fee,
        category=INSURANCE_CATEGORY,
        insurance_detail=f"{rule.service_keyword}({rule.rate * 100:.2f}%) 价值{declared_value:g}",
        formula=f"max({declared_value:g} * {rule.rate:g}, {rule.min_fee:g}) = {fee:.2f}",
    )
