"""账单核对领域模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
import math
import re
from typing import Any, Mapping

BillRow = Mapping[str, Any]

# 结果文案中标记“未能核算”的关键字
UNRESOLVED_MARKERS = ("未找到", "无法")
MONEY_TOLERANCE = 0.01


def round_money(value: float | int | None) -> float:
    """金额保留两位小数（银行家舍入，按十进制表示计算）。"""
    try:
        quantized = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        return 0.0
    return float(quantized)


def count_steps(extra_weight: float, step_weight: float) -> int:
    """续重段数 = ceil(超出重量 / 续重单位)，先截到6位小数消除浮点误差。"""
    if extra_weight <= 0 or step_weight <= 0:
        return 0
    return math.ceil(round(extra_weight / step_weight, 6))


def to_float(value: Any) -> float | None:
    """单元格数值解析：兼容 "1,234.5"、"2.3kg" 等写法，无法解析返回 None。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        return None
    text = text.replace("，", ",").replace(",", "")
    match = re.search(r"-?\d+(?:\.\d+)?", text)
    if not match:
        return None
    try:
        return float(match.group(0))
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class StandardRateRule:
    """标准运费规则：0.5kg/1kg 两档首重 + 每0.5kg续重。"""

    destination: str
    origin: str = ""
    price_under_05: float = 0.0
    price_05_to_1: float = 0.0
    step_price: float = 0.0


@dataclass(frozen=True, slots=True)
class ContractRateRule:
    """合同运费规则：首重 + 续重。"""

    destination_label: str
    origin: str = ""
    product_type: str = ""
    first_weight: float = 1.0
    first_price: float = 0.0
    step_weight: float = 1.0
    step_price: float = 0.0

    @property
    def effective_step_weight(self) -> float:
        return self.step_weight if self.step_weight > 0 else 1.0

    @property
    def display_label(self) -> str:
        if self.product_type.strip():
            return f"{self.destination_label}({self.product_type})"
        return self.destination_label


@dataclass(frozen=True, slots=True)
class PackagingTemplateEntry:
    material_name: str
    unit_price: float = 0.0


@dataclass(frozen=True, slots=True)
class InsuranceRule:
    service_keyword: str
    rate: float = 0.0
    min_fee: float = 0.0


@dataclass(slots=True)
class CalcOutcome:
    """单个计算器的部分结果，由行处理器合并为 ProcessingResult。"""

    theoretical_amount: float = 0.0
    category: str = ""
    freight_detail: str = ""
    formula: str = ""
    packaging_detail: str = ""
    insurance_detail: str = ""
    result_text: str = ""
    reason_text: str = ""


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """单行核对结果。"""

    row_number: int
    tracking_number: str
    origin: str
    destination: str
    category: str
    theoretical_amount: float
    diff_amount: float
    result_text: str
    reason_text: str = ""
    freight_detail: str = ""
    formula: str = ""
    packaging_detail: str = ""
    insurance_detail: str = ""

    @property
    def is_discrepancy(self) -> bool:
        return abs(self.diff_amount) >= MONEY_TOLERANCE

    @property
    def is_unresolved(self) -> bool:
        return any(marker in self.result_text for marker in UNRESOLVED_MARKERS)

    @property
    def needs_review(self) -> bool:
        return self.is_discrepancy or self.is_unresolved

    @property
    def amount_display(self) -> str:
        """核算逻辑列：优先公式，其次金额；未找到标准时留空。"""
        if self.formula:
            return self.formula
        if self.result_text == "未找到运费标准" and self.theoretical_amount == 0:
            return ""
        return f"{self.theoretical_amount:.2f}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "tracking_number": self.tracking_number,
            "origin": self.origin,
            "destination": self.destination,
            "category": self.category,
            "freight_detail": self.freight_detail,
            "formula": self.formula,
            "packaging_detail": self.packaging_detail,
            "insurance_detail": self.insurance_detail,
            "theoretical_amount": round_money(self.theoretical_amount),
            "diff_amount": round_money(self.diff_amount),
            "result_text": self.result_text,
            "reason_text": self.reason_text,
        }


@dataclass(slots=True)
class AggregatedOrder:
    """按运单号汇总的订单，仅在一次核对内存在。"""

    tracking_number: str
    department: str
    agent: str
    payment_type: str
    total_amount: float = 0.0
    requires_offline_approval: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "tracking_number": self.tracking_number,
            "department": self.department,
            "agent": self.agent,
            "payment_type": self.payment_type,
            "total_amount": round_money(self.total_amount),
            "requires_offline_approval": self.requires_offline_approval,
        }


@dataclass(frozen=True, slots=True)
class RowError:
    row_number: int
    message: str


@dataclass(frozen=True, slots=True)
class CalculationStats:
    """一次核对的只读汇总。"""

    total_rows: int = 0
    matched_rows: int = 0
    mismatched_rows: int = 0
    error_rows: int = 0
    total_orders: int = 0
    prepaid_count: int = 0
    collect_count: int = 0
    offline_approval_count: int = 0
    total_diff_amount: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_rows": self.total_rows,
            "matched_rows": self.matched_rows,
            "mismatched_rows": self.mismatched_rows,
            "error_rows": self.error_rows,
            "total_orders": self.total_orders,
            "prepaid_count": self.prepaid_count,
            "collect_count": self.collect_count,
            "offline_approval_count": self.offline_approval_count,
            "total_diff_amount": round_money(self.total_diff_amount),
        }


@dataclass(slots=True)
class ReconcileReport:
    """一次核对的完整产出，供外部写出器使用。"""

    mode: str
    rows: list[dict[str, Any]]
    results: list[ProcessingResult | None]
    errors: list[RowError] = field(default_factory=list)
    orders: list[AggregatedOrder] = field(default_factory=list)
    stats: CalculationStats = field(default_factory=CalculationStats)
    summary: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    def discrepancies(self, limit: int | None = None) -> list[ProcessingResult]:
        """金额差异明细（|差异| ≥ 0.01）。"""
        flagged = [r for r in self.results if r is not None and r.is_discrepancy]
        return flagged[:limit] if limit else flagged

    def review_rows(self, limit: int | None = None) -> list[ProcessingResult]:
        """需复核行：金额差异或未能核算。"""
        flagged = [r for r in self.results if r is not None and r.needs_review]
        return flagged[:limit] if limit else flagged
