"""包装耗材核算：解析“名称:数量N,单价P|...”格式的服务备注。"""

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Sequence

from bill_verifier.modules.reconcile.models import CalcOutcome, PackagingTemplateEntry, MONEY_TOLERANCE, round_money

ITEM_SEPARATOR = "|"
QUANTITY_TOKEN = "数量"
PACKAGING_CATEGORY = "包装材料"

_ITEM_RE = re.compile(r"([^:|：]+)[:：]数量(\d+)(?:[,，]单价([\d.]+))?")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class PackagingItem:
    name: str
    quantity: int
    bill_unit_price: float | None = None


def normalize_material_name(name: str) -> str:
    return _WHITESPACE_RE.sub("", name or "")


def parse_packaging_remark(remark: str) -> tuple[list[PackagingItem], int]:
    """
    拆分备注中的耗材条目。

    Returns:
        (成功解析的条目, 候选条目数)
    """
    segments = [s.strip() for s in (remark or "").split(ITEM_SEPARATOR)]
    segments = [s for s in segments if s]

    items: list[PackagingItem] = []
    for segment in segments:
        if QUANTITY_TOKEN not in segment:
            continue
        match = _ITEM_RE.search(segment)
        if not match:
            continue
        price_text = match.group(3)
        try:
            bill_price = float(price_text) if price_text else None
        except ValueError:
            bill_price = None
        items.append(PackagingItem(match.group(1).strip(), int(match.group(2)), bill_price))

    return items, len(segments)


def _find_template(name: str, template: Sequence[PackagingTemplateEntry]) -> PackagingTemplateEntry | None:
    key = normalize_material_name(name)
    for entry in template:
        if normalize_material_name(entry.material_name) == key:
            return entry
    return None


def calculate_packaging(remark: str, template: Sequence[PackagingTemplateEntry]) -> CalcOutcome:
    items, candidate_count = parse_packaging_remark(remark)

    if not items and candidate_count:
        return CalcOutcome(
            theoretical_amount=0.0,
            result_text="无法提取包装信息",
            packaging_detail="解析失败",
        )

    total = 0.0
    details: list[str] = []
    reasons: list[str] = []

    for item in items:
        entry = _find_template(item.name, template)
        unit_price = 0.0

        if entry is not None:
            unit_price = entry.unit_price
            if item.bill_unit_price is not None and abs(item.bill_unit_price - entry.unit_price) > MONEY_TOLERANCE:
                reasons.append(f"单价与模板不符({item.name}:账单{item.bill_unit_price:g}/模板{entry.unit_price:g})")
        elif item.bill_unit_price is not None:
            unit_price = item.bill_unit_price
            reasons.append(f"模板缺失({item.name})")
        else:
            reasons.append(f"未知材料且无单价({item.name})")

        total += item.quantity * unit_price
        details.append(f"{item.name}×{item.quantity}")

    amount = round_money(total)
    return CalcOutcome(
        theoretical_amount=amount,
        category=PACKAGING_CATEGORY,
        packaging_detail=f"{'+'.join(details)} 合计{amount:.2f}",
        reason_text="; ".join(reasons),
    )
