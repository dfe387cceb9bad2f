"""
账单字段别名解析
Keyed field extraction across heterogeneous bill exports

不同快递公司/不同导出格式的表头各不相同，按别名列表解析逻辑字段。
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from bill_verifier.modules.reconcile.models import to_float

BILL_HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "sequence": ("序号", "No", "Sequence"),
    "tracking_number": ("运单号", "单号", "Waybill No", "运单编号"),
    "weight": ("计费重量", "重量", "Weight", "Chargeable Weight"),
    "fee": ("费用(元)", "运费", "Freight"),
    "payable": ("应付金额", "应付", "Total Amount", "折扣后应付金额", "费用", "金额"),
    "service_type": ("服务", "产品类型", "Product Type", "业务类型", "费用类型"),
    "service_remark": ("服务备注", "备注", "Remark"),
    "origin_province": (
        "始发地(省名)", "始发地", "始发省", "始发城市", "始发地区",
        "原寄地", "原寄省份", "原寄城市", "原寄地区",
        "寄方省份", "寄方", "Start", "Origin",
    ),
    "dest_province": ("目的地(省名)", "目的地", "目的省", "收方省份", "End"),
    "origin_city": ("寄件地区", "始发城市", "原寄城市", "Start City"),
    "dest_city": ("到件地区", "目的城市", "收方城市", "Dest City"),
    "declared_value": ("声明价值", "声明价值(元)", "保价金额"),
    "department": ("部门", "成本中心", "Department", "Dept", "所属部门"),
    "payment_type": ("付款方式", "结算方式", "Payment Type", "Pay Type"),
    "agent": ("经手人", "负责人", "申请人", "Agent", "User", "寄件人"),
    "system_match": ("系统匹配", "匹配结果", "System Match", "匹配备注"),
}

_HEADER_NOISE_RE = re.compile(r"[\s()（）\[\]【】]")


def normalize_header(value: Any) -> str:
    """去空白与括号并转大写，用于表头的宽松比较。"""
    return _HEADER_NOISE_RE.sub("", str(value or "")).upper()


def _has_value(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def get_field(row: Mapping[str, Any], aliases: Iterable[str]) -> str:
    """
    按别名顺序解析字段值，返回第一个非空值（字符串），找不到返回 ""。

    匹配顺序：
        1. 表头精确匹配
        2. 去空白/括号、忽略大小写后精确匹配
        3. 别名与表头互相包含

    别名对应的列存在但为空时直接返回 ""，不做包含匹配。
    """
    candidates = [alias for alias in aliases if alias]
    if not candidates:
        return ""

    column_present = False
    for alias in candidates:
        if alias not in row:
            continue
        column_present = True
        value = row[alias]
        if _has_value(value):
            return str(value).strip()

    normalized_keys = [(normalize_header(key), key) for key in row.keys()]

    for alias in candidates:
        target = normalize_header(alias)
        for norm_key, key in normalized_keys:
            if not norm_key or norm_key != target:
                continue
            column_present = True
            if _has_value(row[key]):
                return str(row[key]).strip()

    if column_present:
        return ""

    for alias in candidates:
        target = normalize_header(alias)
        if not target:
            continue
        for norm_key, key in normalized_keys:
            if not norm_key:
                continue
            if (target in norm_key or norm_key in target) and _has_value(row[key]):
                return str(row[key]).strip()

    return ""


class FieldResolver:
    """带别名配置的字段解析器，别名表可由配置覆盖。"""

    def __init__(self, overrides: Mapping[str, Iterable[str]] | None = None):
        aliases = {name: tuple(values) for name, values in BILL_HEADER_ALIASES.items()}
        for name, values in (overrides or {}).items():
            cleaned = tuple(str(v).strip() for v in values if str(v).strip())
            if cleaned:
                aliases[name] = cleaned
        self.aliases = aliases

    def get(self, row: Mapping[str, Any], field: str) -> str:
        if field not in self.aliases:
            raise KeyError(f"Unknown bill field: {field}")
        return get_field(row, self.aliases[field])

    def get_float(self, row: Mapping[str, Any], field: str, default: float = 0.0) -> float:
        value = to_float(self.get(row, field))
        return default if value is None else value
