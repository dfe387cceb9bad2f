"""标准运费核算：始发地通配 + 目的地“其他”兜底，按特异度择优后分段计价。"""

from __future__ import annotations

from typing import Sequence

from bill_verifier.modules.reconcile.locality import normalize_province
from bill_verifier.modules.reconcile.models import CalcOutcome, StandardRateRule, count_steps, round_money

FALLBACK_DESTINATIONS = frozenset({"其他", "OTHER"})

FIRST_TIER_LIMIT = 0.5
SECOND_TIER_LIMIT = 1.0
STEP_WEIGHT = 0.5


def is_fallback_destination(value: str) -> bool:
    return value.strip().upper() in FALLBACK_DESTINATIONS


def match_standard_rule(
    origin: str,
    destination: str,
    rules: Sequence[StandardRateRule],
) -> StandardRateRule | None:
    """
    在规则表中查找最匹配的标准运费规则。

    Args:
        origin: 已标准化的始发省
        destination: 已标准化的目的省
        rules: 规则表（保持配置顺序）

    Returns:
        得分最高的规则；同分取靠前者；无候选返回 None
    """
    best: StandardRateRule | None = None
    best_score = -1

    for rule in rules:
        rule_origin = normalize_province(rule.origin)
        rule_destination = normalize_province(rule.destination)

        origin_ok = rule_origin == "" or rule_origin == origin
        destination_ok = rule_destination == destination or is_fallback_destination(rule_destination)
        if not (origin_ok and destination_ok):
            continue

        score = 0
        if rule_origin and rule_origin == origin:
            score += 2
        if rule_destination == destination and not is_fallback_destination(rule_destination):
            score += 1

        if score > best_score:
            best, best_score = rule, score

    return best


def price_standard(rule: StandardRateRule, weight: float) -> tuple[float, str]:
    """按重量段计价，返回 (金额, 公式)。"""
    if weight <= FIRST_TIER_LIMIT:
        amount = round_money(rule.price_under_05)
        return amount, f"{amount:.2f}"

    if weight <= SECOND_TIER_LIMIT:
        amount = round_money(rule.price_05_to_1 or rule.price_under_05)
        return amount, f"{amount:.2f}"

    if rule.price_05_to_1 > 0:
        base_price, threshold = rule.price_05_to_1, SECOND_TIER_LIMIT
    else:
        base_price, threshold = rule.price_under_05, FIRST_TIER_LIMIT

    steps = count_steps(weight - threshold, STEP_WEIGHT)
    amount = round_money(base_price + steps * rule.step_price)
    return amount, f"{base_price:g} + {steps} * {rule.step_price:g} = {amount:.2f}"


def calculate_standard_freight(
    origin_raw: str,
    destination_raw: str,
    weight: float,
    rules: Sequence[StandardRateRule],
) -> CalcOutcome:
    origin = normalize_province(origin_raw)
    destination = normalize_province(destination_raw)

    rule = match_standard_rule(origin, destination, rules)
    if rule is None:
        return CalcOutcome(
            theoretical_amount=0.0,
            result_text="未找到运费标准",
            reason_text=f"未找到 {origin_raw}({origin}) 到 {destination_raw}({destination}) 的报价",
            freight_detail=f"{origin}-{destination} 无报价",
        )

    amount, formula = price_standard(rule, weight)
    return CalcOutcome(
        theoretical_amount=amount,
        category="运费",
        freight_detail=f"{origin}-{destination} {amount:.2f}",
        formula=formula,
    )
