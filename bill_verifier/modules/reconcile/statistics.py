"""
订单统计
Order statistics views

三张汇总表：部门付款方式统计、需线下审批明细、线下审批付款方式统计。
金额累计时不取整，输出时保留两位小数。
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from bill_verifier.modules.reconcile.aggregation import is_summary_row
from bill_verifier.modules.reconcile.fields import FieldResolver
from bill_verifier.modules.reconcile.models import (
    AggregatedOrder,
    BillRow,
    CalculationStats,
    ProcessingResult,
    RowError,
    round_money,
)

DEPARTMENT_PAYMENT_VIEW = "部门付款方式统计"
OFFLINE_DETAIL_VIEW = "需线下审批明细"
OFFLINE_PAYMENT_VIEW = "线下审批付款方式统计"

SUMMARY_COLUMNS = {
    DEPARTMENT_PAYMENT_VIEW: ("部门", "付款方式", "订单数量", "总金额"),
    OFFLINE_DETAIL_VIEW: ("经手人", "运单号", "总金额", "付款方式"),
    OFFLINE_PAYMENT_VIEW: ("经手人", "部门", "付款方式", "订单数量", "总金额"),
}

PREPAID_TOKEN = "寄付"
COLLECT_TOKEN = "到付"
MISMATCH_MARKERS = ("差异", "未找到")


def _group(orders: Iterable[AggregatedOrder], key_fn) -> dict[tuple, list[Any]]:
    groups: dict[tuple, list[Any]] = {}
    for order in orders:
        entry = groups.setdefault(key_fn(order), [0, 0.0])
        entry[0] += 1
        entry[1] += order.total_amount
    return groups


def department_payment_stats(orders: Sequence[AggregatedOrder]) -> list[dict[str, Any]]:
    groups = _group(orders, lambda o: (o.department, o.payment_type))
    rows = [
        {"部门": dept, "付款方式": pay, "订单数量": count, "总金额": round_money(total)}
        for (dept, pay), (count, total) in groups.items()
    ]
    rows.sort(key=lambda r: r["部门"])
    return rows


def offline_approval_details(orders: Sequence[AggregatedOrder]) -> list[dict[str, Any]]:
    rows = [
        {
            "经手人": o.agent,
            "运单号": o.tracking_number,
            "总金额": round_money(o.total_amount),
            "付款方式": o.payment_type,
        }
        for o in orders
        if o.requires_offline_approval
    ]
    rows.sort(key=lambda r: r["经手人"])
    return rows


def offline_payment_stats(orders: Sequence[AggregatedOrder]) -> list[dict[str, Any]]:
    flagged = [o for o in orders if o.requires_offline_approval]
    groups = _group(flagged, lambda o: (o.agent, o.department, o.payment_type))
    rows = [
        {"经手人": agent, "部门": dept, "付款方式": pay, "订单数量": count, "总金额": round_money(total)}
        for (agent, dept, pay), (count, total) in groups.items()
    ]
    rows.sort(key=lambda r: (r["经手人"], r["部门"]))
    return rows


def build_summary(orders: Sequence[AggregatedOrder]) -> dict[str, list[dict[str, Any]]]:
    return {
        DEPARTMENT_PAYMENT_VIEW: department_payment_stats(orders),
        OFFLINE_DETAIL_VIEW: offline_approval_details(orders),
        OFFLINE_PAYMENT_VIEW: offline_payment_stats(orders),
    }


def build_stats(
    rows: Sequence[BillRow],
    results: Sequence[ProcessingResult | None],
    orders: Sequence[AggregatedOrder],
    errors: Sequence[RowError] = (),
    resolver: FieldResolver | None = None,
) -> CalculationStats:
    """
    汇总一次核对的计数

    - 合计行不计入差异金额
    - 出错行只计入 error_rows，不计入一致/差异
    """
    matched = mismatched = 0
    total_diff = 0.0

    for row, result in zip(rows, results):
        if result is None:
            continue
        if any(marker in result.result_text for marker in MISMATCH_MARKERS):
            mismatched += 1
        else:
            matched += 1
        if not is_summary_row(row, resolver):
            total_diff += result.diff_amount

    return CalculationStats(
        total_rows=len(rows),
        matched_rows=matched,
        mismatched_rows=mismatched,
        error_rows=len(errors),
        total_orders=len(orders),
        prepaid_count=sum(1 for o in orders if PREPAID_TOKEN in o.payment_type),
        collect_count=sum(1 for o in orders if COLLECT_TOKEN in o.payment_type),
        offline_approval_count=sum(1 for o in orders if o.requires_offline_approval),
        total_diff_amount=round_money(total_diff),
    )
