"""
行处理器
Row processor

按服务类型把账单行分派到运费/包装/保价计算器，合并为 ProcessingResult。
标准模式按服务类型精确匹配；合同模式按关键字包含匹配。
"""

from __future__ import annotations

from typing import Any, Mapping

from bill_verifier.modules.reconcile.contract import (
    Shipment,
    calculate_contract_freight,
    calculate_route_table_freight,
    has_contract_tags,
)
from bill_verifier.modules.reconcile.fields import FieldResolver
from bill_verifier.modules.reconcile.insurance import calculate_insurance
from bill_verifier.modules.reconcile.locality import compact_city, normalize_province
from bill_verifier.modules.reconcile.models import MONEY_TOLERANCE, CalcOutcome, ProcessingResult, round_money
from bill_verifier.modules.reconcile.packaging import calculate_packaging
from bill_verifier.modules.reconcile.rule_tables import RuleSet
from bill_verifier.modules.reconcile.standard import calculate_standard_freight

MODE_STANDARD = "standard"
MODE_CONTRACT = "contract"

UNVERIFIED_SERVICE = "未核算服务类型"
MISMATCH_REASON = "金额不一致"
DEFAULT_FREIGHT_CATEGORY = "运费"

STANDARD_FREIGHT_TYPES = frozenset({"运费"})
STANDARD_PACKAGING_TYPES = frozenset({"包装服务", "包装费"})
STANDARD_INSURANCE_TYPES = frozenset({"保价"})

CONTRACT_PACKAGING_KEYWORDS = ("包装", "耗材")
CONTRACT_INSURANCE_KEYWORDS = ("保价", "保险")
FREIGHT_LIKE_KEYWORDS = ("运费", "费", "标快", "特快")

_DEFAULT_RESOLVER = FieldResolver()


def _pass_through(service_type: str, payable: float) -> CalcOutcome:
    return CalcOutcome(theoretical_amount=round_money(payable), category=service_type, result_text=UNVERIFIED_SERVICE)


def _finalize(
    outcome: CalcOutcome,
    row_number: int,
    tracking_number: str,
    origin: str,
    destination: str,
    payable: float,
    category: str,
) -> ProcessingResult:
    theoretical = outcome.theoretical_amount
    # 账单金额同样按两位小数计
    diff = round_money(round_money(payable) - theoretical)

    result_text = outcome.result_text
    reason_text = outcome.reason_text
    if not result_text:
        if abs(diff) < MONEY_TOLERANCE:
            result_text = f"{category}一致"
        else:
            result_text = f"{category}差异（账单：{payable:.2f} vs 核算：{theoretical:.2f}）"
            reason_text = reason_text or MISMATCH_REASON

    return ProcessingResult(
        row_number=row_number,
        tracking_number=tracking_number,
        origin=origin,
        destination=destination,
        category=category,
        theoretical_amount=theoretical,
        diff_amount=diff,
        result_text=result_text,
        reason_text=reason_text,
        freight_detail=outcome.freight_detail,
        formula=outcome.formula,
        packaging_detail=outcome.packaging_detail,
        insurance_detail=outcome.insurance_detail,
    )


def process_standard_row(
    row: Mapping[str, Any],
    row_number: int,
    rules: RuleSet,
    resolver: FieldResolver = _DEFAULT_RESOLVER,
) -> ProcessingResult:
    service_type = resolver.get(row, "service_type")
    payable = resolver.get_float(row, "payable")
    origin = resolver.get(row, "origin_province")
    destination = resolver.get(row, "dest_province")

    if service_type in STANDARD_FREIGHT_TYPES:
        weight = resolver.get_float(row, "weight")
        outcome = calculate_standard_freight(origin, destination, weight, rules.standard_rates)
    elif service_type in STANDARD_PACKAGING_TYPES:
        outcome = calculate_packaging(resolver.get(row, "service_remark"), rules.packaging_template)
    elif service_type in STANDARD_INSURANCE_TYPES:
        outcome = calculate_insurance(
            resolver.get(row, "declared_value"),
            resolver.get(row, "service_remark"),
            rules.insurance_rules,
        )
    else:
        outcome = _pass_through(service_type, payable)

    return _finalize(
        outcome,
        row_number,
        resolver.get(row, "tracking_number"),
        origin,
        destination,
        payable,
        outcome.category or service_type,
    )


def _contract_freight(row: Mapping[str, Any], service_type: str, rules: RuleSet, resolver: FieldResolver) -> CalcOutcome:
    origin_raw = resolver.get(row, "origin_province")
    destination_raw = resolver.get(row, "dest_province")
    origin_city = compact_city(resolver.get(row, "origin_city"))
    destination_city = compact_city(resolver.get(row, "dest_city"))

    # 省份缺失时由城市推断（城市表含上海各区）
    shipment = Shipment(
        origin_province=normalize_province(origin_raw or origin_city),
        destination_province=normalize_province(destination_raw or destination_city),
        origin_city=origin_city,
        destination_city=destination_city,
        product_type=service_type,
        weight=resolver.get_float(row, "weight"),
    )

    if has_contract_tags(rules.contract_rates):
        return calculate_contract_freight(shipment, rules.contract_rates)
    return calculate_route_table_freight(shipment, rules.contract_rates, origin_raw, destination_raw)


def process_contract_row(
    row: Mapping[str, Any],
    row_number: int,
    rules: RuleSet,
    resolver: FieldResolver = _DEFAULT_RESOLVER,
) -> ProcessingResult:
    service_type = resolver.get(row, "service_type")
    payable = resolver.get_float(row, "payable")

    if any(k in service_type for k in CONTRACT_PACKAGING_KEYWORDS):
        outcome = calculate_packaging(resolver.get(row, "service_remark"), rules.packaging_template)
    elif any(k in service_type for k in CONTRACT_INSURANCE_KEYWORDS):
        outcome = calculate_insurance(
            resolver.get(row, "declared_value"),
            resolver.get(row, "service_remark"),
            rules.insurance_rules,
        )
    else:
        outcome = _contract_freight(row, service_type, rules, resolver)
        looks_like_freight = any(k in service_type for k in FREIGHT_LIKE_KEYWORDS)
        if service_type and not looks_like_freight and not outcome.category:
            outcome = _pass_through(service_type, payable)

    origin = resolver.get(row, "origin_province") or resolver.get(row, "origin_city")
    destination = resolver.get(row, "dest_province") or resolver.get(row, "dest_city")
    return _finalize(
        outcome,
        row_number,
        resolver.get(row, "tracking_number"),
        origin,
        destination,
        payable,
        outcome.category or DEFAULT_FREIGHT_CATEGORY,
    )


def process_row(
    row: Mapping[str, Any],
    row_number: int,
    rules: RuleSet,
    mode: str = MODE_STANDARD,
    resolver: FieldResolver | None = None,
) -> ProcessingResult:
    """
    核算单行账单

    Args:
        row: 原始账单行
        row_number: 表格行号（表头为第1行）
        rules: 本次核对的规则快照
        mode: standard / contract
        resolver: 字段解析器，默认使用内置别名表

    Returns:
        不可变的核对结果
    """
    resolver = resolver or _DEFAULT_RESOLVER
    if mode == MODE_CONTRACT:
        return process_contract_row(row, row_number, rules, resolver)
    if mode == MODE_STANDARD:
        return process_standard_row(row, row_number, rules, resolver)
    raise ValueError(f"Unsupported reconcile mode: {mode}")
