"""订单汇总与统计测试。"""

import pytest

from bill_verifier.modules.reconcile.aggregation import (
    aggregate_orders,
    is_summary_row,
    requires_offline_approval,
)
from bill_verifier.modules.reconcile.models import AggregatedOrder, RowError
from bill_verifier.modules.reconcile.statistics import (
    DEPARTMENT_PAYMENT_VIEW,
    OFFLINE_DETAIL_VIEW,
    OFFLINE_PAYMENT_VIEW,
    build_stats,
    build_summary,
    department_payment_stats,
    offline_approval_details,
    offline_payment_stats,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("线下审批", True),
        (" 线下审批 ", True),
        ("（线下审批）", True),
        ("需线下确认", True),
        ("线下(审批)中", True),
        ("线上审批", False),
        ("线下", False),
        ("", False),
        (None, False),
        (123, False),
    ],
)
def test_requires_offline_approval(value, expected):
    assert requires_offline_approval(value) is expected


class TestSummaryRow:
    def test_sequence_keywords(self):
        assert is_summary_row({"序号": "合计", "运单号": ""})
        assert is_summary_row({"序号": "本页小计"})
        assert is_summary_row({"序号": "total"})

    def test_tracking_keywords(self):
        assert is_summary_row({"序号": "", "运单号": "承前页"})

    def test_regular_row(self):
        assert not is_summary_row({"序号": "1", "运单号": "SF001"})


class TestAggregateOrders:
    def test_sums_rows_sharing_tracking_number(self, result_factory):
        pairs = [
            ({"运单号": "SF1", "部门": "", "经手人": "张三", "付款方式": "寄付"}, result_factory("SF1", 10)),
            ({"运单号": "SF1", "部门": "财务部", "经手人": "李四", "付款方式": "到付"}, result_factory("SF1", 2.5)),
            ({"运单号": "SF2", "部门": "行政部"}, result_factory("SF2", 7)),
        ]
        orders = aggregate_orders(pairs)
        assert [o.tracking_number for o in orders] == ["SF1", "SF2"]

        first = orders[0]
        assert first.total_amount == pytest.approx(12.5)
        # 部门首个为默认值，被后续行补齐；经手人/付款方式保持首个非默认值
        assert first.department == "财务部"
        assert first.agent == "张三"
        assert first.payment_type == "寄付"

        second = orders[1]
        assert second.agent == "未知"
        assert second.payment_type == "其他"

    def test_missing_tracking_numbers_are_not_merged(self, result_factory):
        pairs = [
            ({"部门": "财务部"}, result_factory("", 1)),
            ({"部门": "财务部"}, result_factory("", 2)),
        ]
        orders = aggregate_orders(pairs)
        assert [o.tracking_number for o in orders] == ["UNKNOWN_1", "UNKNOWN_2"]

    def test_tracking_number_falls_back_to_row(self, result_factory):
        orders = aggregate_orders([({"运单号": "SF8"}, result_factory("", 1))])
        assert orders[0].tracking_number == "SF8"

    def test_approval_flag_is_sticky_regardless_of_order(self, result_factory):
        flagged = ({"运单号": "SF1", "系统匹配": "线下审批"}, result_factory("SF1", 1))
        plain = ({"运单号": "SF1", "系统匹配": "已匹配"}, result_factory("SF1", 2))

        assert aggregate_orders([flagged, plain])[0].requires_offline_approval
        assert aggregate_orders([plain, flagged])[0].requires_offline_approval

    def test_total_equals_sum_of_row_amounts(self, result_factory):
        amounts = {"SF1": [1.1, 2.2, 3.3], "SF2": [0.5], "SF3": [4, 4.01]}
        pairs = [
            ({"运单号": tn}, result_factory(tn, amount))
            for tn, values in amounts.items()
            for amount in values
        ]
        totals = {o.tracking_number: o.total_amount for o in aggregate_orders(pairs)}
        for tn, values in amounts.items():
            assert totals[tn] == pytest.approx(sum(values))


def _orders():
    return [
        AggregatedOrder("SF1", "财务部", "张三", "寄付", 10, True),
        AggregatedOrder("SF2", "财务部", "张三", "寄付", 5.5, False),
        AggregatedOrder("SF3", "行政部", "李四", "到付", 3, True),
        AggregatedOrder("SF4", "行政部", "张三", "寄付", 1.25, True),
    ]


class TestStatistics:
    def test_department_payment_stats(self):
        rows = department_payment_stats(_orders())
        by_key = {(r["部门"], r["付款方式"]): r for r in rows}
        assert by_key[("财务部", "寄付")]["订单数量"] == 2
        assert by_key[("财务部", "寄付")]["总金额"] == 15.5
        assert by_key[("行政部", "到付")]["总金额"] == 3
        assert [r["部门"] for r in rows] == sorted(r["部门"] for r in rows)

    def test_offline_details_sorted_by_agent(self):
        rows = offline_approval_details(_orders())
        assert {r["运单号"] for r in rows} == {"SF1", "SF3", "SF4"}
        assert [r["经手人"] for r in rows] == sorted(r["经手人"] for r in rows)
        assert set(rows[0]) == {"经手人", "运单号", "总金额", "付款方式"}

    def test_offline_payment_stats(self):
        rows = offline_payment_stats(_orders())
        by_key = {(r["经手人"], r["部门"], r["付款方式"]): r for r in rows}
        assert by_key[("张三", "财务部", "寄付")]["订单数量"] == 1
        assert by_key[("张三", "行政部", "寄付")]["总金额"] == 1.25
        assert by_key[("李四", "行政部", "到付")]["总金额"] == 3
        keys = [(r["经手人"], r["部门"]) for r in rows]
        assert keys == sorted(keys)

    def test_build_summary_views(self):
        summary = build_summary(_orders())
        assert set(summary) == {DEPARTMENT_PAYMENT_VIEW, OFFLINE_DETAIL_VIEW, OFFLINE_PAYMENT_VIEW}
        assert build_summary([])[OFFLINE_DETAIL_VIEW] == []

    def test_build_stats(self, result_factory):
        rows = [{"序号": "1"}, {"序号": "2"}, {"序号": "3"}, {"序号": "合计"}, {"序号": "5"}]
        results = [
            result_factory(diff=0),
            result_factory(diff=3.2, result_text="运费差异（账单：20.00 vs 核算：16.80）"),
            result_factory(diff=30, result_text="未找到运费标准"),
            result_factory(diff=100),
            None,
        ]
        stats = build_stats(rows, results, _orders(), [RowError(6, "boom")])
        assert stats.total_rows == 5
        assert stats.matched_rows == 2
        assert stats.mismatched_rows == 2
        assert stats.error_rows == 1
        assert stats.total_orders == 4
        assert stats.prepaid_count == 3
        assert stats.collect_count == 1
        assert stats.offline_approval_count == 3
        assert stats.total_diff_amount == 33.2
