"""
核对结果写出
Result workbook writer

把核对结果合并回原始账单行，写出一个 .xlsx 工作簿：
差异或未能核算的行整行标红，末尾追加“总计”行，三张统计视图各占一个工作表。
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from bill_verifier.modules.reconcile.aggregation import is_summary_row
from bill_verifier.modules.reconcile.models import ProcessingResult, ReconcileReport, round_money
from bill_verifier.modules.reconcile.statistics import SUMMARY_COLUMNS

RESULT_SHEET = "核对结果"
OUTPUT_HEADERS = (
    "核算类目",
    "运费核算",
    "包装核算",
    "保价核算",
    "核算逻辑",
    "核算金额",
    "差异金额",
    "核对结果",
    "差异原因",
)
AMOUNT_HEADER = "核算金额"
DIFF_HEADER = "差异金额"
TOTAL_LABEL = "总计"
DEFAULT_FILENAME_PREFIX = "SF_Check_Result"

# 结果文案含以下字样的行需要标红
FLAG_MARKERS = ("未找到", "差异", "无法")

FLAG_FILL = PatternFill(start_color="FFE4E1", end_color="FFE4E1", fill_type="solid")
FLAG_FONT = Font(color="8B0000")
TOTAL_FILL = PatternFill(start_color="FFFFCC", end_color="FFFFCC", fill_type="solid")
HEADER_FONT = Font(bold=True)
MONEY_FORMAT = "0.00"
MAX_COLUMN_WIDTH = 50


def is_flagged(result: ProcessingResult | None) -> bool:
    if result is None:
        return False
    return result.needs_review or any(marker in result.result_text for marker in FLAG_MARKERS)


def merge_result(row: dict[str, Any], result: ProcessingResult | None) -> dict[str, Any]:
    merged = dict(row)
    if result is None:
        return merged

    merged.update(
        {
            "核算类目": result.category,
            "运费核算": result.freight_detail,
            "包装核算": result.packaging_detail,
            "保价核算": result.insurance_detail,
            "核算逻辑": result.amount_display,
            AMOUNT_HEADER: round_money(result.theoretical_amount),
            DIFF_HEADER: round_money(result.diff_amount),
            "核对结果": result.result_text,
            "差异原因": result.reason_text,
        }
    )
    return merged


def build_totals(report: ReconcileReport) -> tuple[float, float]:
    """合计只统计非汇总行，避免与账单自带的合计行重复累加。"""
    theoretical = 0.0
    diff = 0.0
    for row, result in zip(report.rows, report.results):
        if result is None or is_summary_row(row):
            continue
        theoretical += result.theoretical_amount
        diff += result.diff_amount
    return round_money(theoretical), round_money(diff)


def default_output_path(
    output_dir: str | Path,
    prefix: str = DEFAULT_FILENAME_PREFIX,
    now: datetime | None = None,
) -> Path:
    """未指定输出路径时，在输出目录下按时间戳命名。"""
    now = now or datetime.now()
    return Path(output_dir) / f"{prefix}_{now:%Y%m%d_%H%M}.xlsx"


def _output_headers(rows: Sequence[dict[str, Any]]) -> list[str]:
    headers: list[str] = []
    for row in rows:
        for key in row:
            if key not in headers and key not in OUTPUT_HEADERS:
                headers.append(key)
    return headers + list(OUTPUT_HEADERS)


def _append_rows(ws: Worksheet, headers: Sequence[str], rows: Sequence[dict[str, Any]]) -> None:
    ws.append(list(headers))
    for row in rows:
        ws.append([row.get(h, "") for h in headers])


def _style_sheet(ws: Worksheet) -> None:
    for cell in ws[1]:
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for column in ws.columns:
        width = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
        ws.column_dimensions[get_column_letter(column[0].column)].width = min(width + 2, MAX_COLUMN_WIDTH)

    ws.freeze_panes = "A2"


def _write_result_sheet(ws: Worksheet, report: ReconcileReport) -> None:
    headers = _output_headers(report.rows)
    amount_col = headers.index(AMOUNT_HEADER) + 1
    diff_col = headers.index(DIFF_HEADER) + 1

    merged = [merge_result(row, result) for row, result in zip(report.rows, report.results)]
    _append_rows(ws, headers, merged)

    for offset, result in enumerate(report.results, start=2):
        if result is None:
            continue
        ws.cell(row=offset, column=amount_col).number_format = MONEY_FORMAT
        ws.cell(row=offset, column=diff_col).number_format = MONEY_FORMAT
        if is_flagged(result):
            for cell in ws[offset]:
                cell.fill = FLAG_FILL
                cell.font = FLAG_FONT

    theoretical, diff = build_totals(report)
    total_row = ws.max_row + 1
    if amount_col > 1:
        label = ws.cell(row=total_row, column=amount_col - 1, value=TOTAL_LABEL)
        label.font = Font(bold=True)
        label.alignment = Alignment(horizontal="right")

    amount = ws.cell(row=total_row, column=amount_col, value=theoretical)
    amount.number_format = MONEY_FORMAT
    amount.font = Font(bold=True)
    amount.fill = TOTAL_FILL

    diff_cell = ws.cell(row=total_row, column=diff_col, value=diff)
    diff_cell.number_format = MONEY_FORMAT
    diff_cell.font = Font(bold=True, color="FF0000" if diff != 0 else "008000")

    _style_sheet(ws)


def write_report(report: ReconcileReport, output_path: str | Path) -> Path:
    """
    写出核对结果工作簿

    Args:
        report: 核对报告
        output_path: 输出路径，后缀统一改为 .xlsx

    Returns:
        实际写出的文件路径
    """
    output_path = Path(output_path)
    if output_path.suffix.lower() != ".xlsx":
        output_path = output_path.with_suffix(".xlsx")
    output_path.parent.mkdir(parents=True, exist_ok=True)

    workbook = Workbook()
    result_sheet = workbook.active
    result_sheet.title = RESULT_SHEET
    _write_result_sheet(result_sheet, report)

    for view_name, columns in SUMMARY_COLUMNS.items():
        sheet = workbook.create_sheet(view_name)
        _append_rows(sheet, columns, report.summary.get(view_name, []))
        _style_sheet(sheet)

    workbook.save(output_path)
    return output_path
