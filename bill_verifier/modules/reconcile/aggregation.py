"""按运单号汇总订单，识别合计行与需线下审批的订单。"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from bill_verifier.modules.reconcile.fields import FieldResolver
from bill_verifier.modules.reconcile.models import AggregatedOrder, ProcessingResult

SUMMARY_KEYWORDS = ("合计", "总计", "TOTAL", "SUM", "小计", "SUBTOTAL", "结转", "承前")

DEFAULT_DEPARTMENT = "未分类"
DEFAULT_AGENT = "未知"
DEFAULT_PAYMENT_TYPE = "其他"

OFFLINE_APPROVAL = "线下审批"
OFFLINE_TOKEN = "线下"
APPROVAL_TOKENS = ("审批", "确认")

PLACEHOLDER_PREFIX = "UNKNOWN_"

_PAREN_RE = re.compile(r"[（）()]")
_DEFAULT_RESOLVER = FieldResolver()


def is_summary_row(row: Mapping[str, Any], resolver: FieldResolver | None = None) -> bool:
    """序号或运单号含“合计/小计/结转”等字样的行为文档级汇总行。"""
    resolver = resolver or _DEFAULT_RESOLVER
    sequence = resolver.get(row, "sequence").upper()
    tracking = resolver.get(row, "tracking_number").upper()
    return any(k in sequence or k in tracking for k in SUMMARY_KEYWORDS)


def requires_offline_approval(value: Any) -> bool:
    if not value or not isinstance(value, str):
        return False
    text = _PAREN_RE.sub("", value.strip())
    if text == OFFLINE_APPROVAL:
        return True
    return OFFLINE_TOKEN in text and any(token in text for token in APPROVAL_TOKENS)


def aggregate_orders(
    pairs: Iterable[tuple[Mapping[str, Any], ProcessingResult]],
    resolver: FieldResolver | None = None,
) -> list[AggregatedOrder]:
    """
    将 (账单行, 核对结果) 按运单号合并为订单

    - 无运单号的行各自生成 UNKNOWN_n 占位单号，互不合并
    - 部门/经手人/付款方式取第一个非默认值
    - 任一行需线下审批则整单标记，且不会被后续行清除

    调用方需事先剔除合计行。
    """
    resolver = resolver or _DEFAULT_RESOLVER
    orders: dict[str, AggregatedOrder] = {}
    placeholder_count = 0

    for row, result in pairs:
        tracking_number = result.tracking_number or resolver.get(row, "tracking_number")
        if not tracking_number:
            placeholder_count += 1
            tracking_number = f"{PLACEHOLDER_PREFIX}{placeholder_count}"

        department = resolver.get(row, "department") or DEFAULT_DEPARTMENT
        agent = resolver.get(row, "agent") or DEFAULT_AGENT
        payment_type = resolver.get(row, "payment_type") or DEFAULT_PAYMENT_TYPE
        approval = requires_offline_approval(resolver.get(row, "system_match"))

        order = orders.get(tracking_number)
        if order is None:
            orders[tracking_number] = AggregatedOrder(
                tracking_number=tracking_number,
                department=department,
                agent=agent,
                payment_type=payment_type,
                total_amount=result.theoretical_amount,
                requires_offline_approval=approval,
            )
            continue

        order.total_amount += result.theoretical_amount
        if order.department == DEFAULT_DEPARTMENT:
            order.department = department
        if order.agent == DEFAULT_AGENT:
            order.agent = agent
        if order.payment_type == DEFAULT_PAYMENT_TYPE:
            order.payment_type = payment_type
        if approval:
            order.requires_offline_approval = True

    return list(orders.values())
