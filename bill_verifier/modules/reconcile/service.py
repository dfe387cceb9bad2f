"""
账单核对服务
Reconcile Service

前置校验 → 冻结规则快照 → 逐行核算 → 按运单汇总 → 统计。
单行异常只记为错误行，不中断整次核对。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

from bill_verifier.core.config import get_config
from bill_verifier.core.error_handler import ReconcileInputError, log_execution_time
from bill_verifier.core.logger import get_logger
from bill_verifier.modules.reconcile.aggregation import aggregate_orders, is_summary_row
from bill_verifier.modules.reconcile.bill_reader import read_records, read_table
from bill_verifier.modules.reconcile.fields import FieldResolver
from bill_verifier.modules.reconcile.models import ProcessingResult, ReconcileReport, RowError
from bill_verifier.modules.reconcile.processor import MODE_CONTRACT, MODE_STANDARD, process_row
from bill_verifier.modules.reconcile.rule_tables import (
    RuleSet,
    parse_contract_rates,
    parse_insurance_rules,
    parse_packaging_template,
    parse_standard_rates,
)
from bill_verifier.modules.reconcile.statistics import build_stats, build_summary

MISSING_BILL = "请上传快递账单文件"
EMPTY_BILL = "账单文件为空或无法解析"
MISSING_RATES = "请上传运费收费标准或手动配置费率规则"


class ReconcileService:
    """快递账单核对服务。"""

    def __init__(self, config: Mapping[str, Any] | None = None):
        if config is None:
            config = get_config().get_section("reconcile", {})
        self.config = dict(config)
        self.logger = get_logger()
        self.resolver = FieldResolver(self.config.get("header_aliases") or {})

    @property
    def mode(self) -> str:
        mode = self.config.get("mode", MODE_STANDARD)
        return getattr(mode, "value", mode)

    def build_rules(self) -> RuleSet:
        return RuleSet.from_config(self.config)

    def validate_inputs(self, rows: Sequence[Mapping[str, Any]] | None, rules: RuleSet, mode: str) -> None:
        """核对前置校验，失败时阻断整次核对。"""
        if mode not in (MODE_STANDARD, MODE_CONTRACT):
            raise ReconcileInputError(f"Unsupported reconcile mode: {mode}", {"mode": mode})
        if rows is None:
            raise ReconcileInputError(MISSING_BILL)
        if not rows:
            raise ReconcileInputError(EMPTY_BILL)
        if not rules.rates_for(mode):
            raise ReconcileInputError(MISSING_RATES, {"mode": mode})

    @log_execution_time()
    def run(
        self,
        rows: Sequence[Mapping[str, Any]] | None,
        rules: RuleSet | None = None,
        mode: str | None = None,
        row_numbers: Sequence[int] | None = None,
    ) -> ReconcileReport:
        """
        执行一次核对

        Args:
            rows: 账单行（读取器已将缺失单元格补为 ""）
            rules: 规则快照，不传则按配置构建
            mode: standard / contract，不传则取配置
            row_numbers: 每行在原表中的行号，不传则按 序号+2 计算

        Returns:
            ReconcileReport

        Raises:
            ReconcileInputError: 缺少账单或运费标准
        """
        mode = getattr(mode, "value", mode) or self.mode
        rules = rules if rules is not None else self.build_rules()
        self.validate_inputs(rows, rules, mode)

        records = [dict(row) for row in rows]
        if row_numbers is None or len(row_numbers) != len(records):
            row_numbers = [index + 2 for index in range(len(records))]

        self.logger.info(
            f"Reconcile started: mode={mode}, rows={len(records)}, rules={rules.counts()}"
        )

        results: list[ProcessingResult | None] = []
        errors: list[RowError] = []
        for record, row_number in zip(records, row_numbers):
            try:
                results.append(process_row(record, row_number, rules, mode, self.resolver))
            except Exception as e:
                self.logger.warning(f"Row {row_number} failed: {e}")
                errors.append(RowError(row_number=row_number, message=str(e)))
                results.append(None)

        pairs = [
            (record, result)
            for record, result in zip(records, results)
            if result is not None and not is_summary_row(record, self.resolver)
        ]
        orders = aggregate_orders(pairs, self.resolver)
        stats = build_stats(records, results, orders, errors, self.resolver)

        self.logger.success(
            f"Reconcile finished: matched={stats.matched_rows}, mismatched={stats.mismatched_rows}, "
            f"errors={stats.error_rows}, orders={stats.total_orders}"
        )

        return ReconcileReport(
            mode=mode,
            rows=records,
            results=results,
            errors=errors,
            orders=orders,
            stats=stats,
            summary=build_summary(orders),
        )

    def load_rules(
        self,
        rates_path: str | Path | None = None,
        packaging_path: str | Path | None = None,
        insurance_path: str | Path | None = None,
        mode: str | None = None,
    ) -> RuleSet:
        """以配置为基础，用上传的标准文件替换对应规则表。"""
        mode = getattr(mode, "value", mode) or self.mode
        base = self.build_rules()
        standard, contract = base.standard_rates, base.contract_rates
        packaging, insurance = base.packaging_template, base.insurance_rules

        if rates_path:
            records = read_records(rates_path)
            if mode == MODE_CONTRACT:
                contract = parse_contract_rates(records)
            else:
                standard = parse_standard_rates(records)
            self.logger.info(f"Loaded rate table: {rates_path} ({len(records)} rows)")
        if packaging_path:
            packaging = parse_packaging_template(read_records(packaging_path))
        if insurance_path:
            insurance = parse_insurance_rules(read_records(insurance_path))

        return RuleSet.freeze(standard, contract, packaging, insurance)

    def run_file(
        self,
        bill_path: str | Path | None,
        rates_path: str | Path | None = None,
        packaging_path: str | Path | None = None,
        insurance_path: str | Path | None = None,
        mode: str | None = None,
    ) -> ReconcileReport:
        if not bill_path:
            raise ReconcileInputError(MISSING_BILL)

        table = read_table(bill_path)
        rules = self.load_rules(rates_path, packaging_path, insurance_path, mode)
        return self.run(table.rows, rules=rules, mode=mode, row_numbers=table.row_numbers)
