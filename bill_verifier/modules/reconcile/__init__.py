"""账单核对模块。"""

from .aggregation import aggregate_orders, is_summary_row, requires_offline_approval
from .bill_reader import BillTable, BillTableReader, read_table
from .contract import Shipment, calculate_contract_freight, classify_route
from .fields import BILL_HEADER_ALIASES, FieldResolver, get_field
from .insurance import calculate_insurance
from .locality import normalize_province
from .models import (
    AggregatedOrder,
    CalculationStats,
    ContractRateRule,
    InsuranceRule,
    PackagingTemplateEntry,
    ProcessingResult,
    ReconcileReport,
    StandardRateRule,
)
from .packaging import calculate_packaging
from .processor import process_row
from .result_writer import default_output_path, write_report
from .rule_tables import RuleSet
from .service import ReconcileService
from .standard import calculate_standard_freight
from .statistics import build_stats, build_summary

__all__ = [
    "AggregatedOrder",
    "BILL_HEADER_ALIASES",
    "BillTable",
    "BillTableReader",
    "CalculationStats",
    "ContractRateRule",
    "FieldResolver",
    "InsuranceRule",
    "PackagingTemplateEntry",
    "ProcessingResult",
    "ReconcileReport",
    "ReconcileService",
    "RuleSet",
    "Shipment",
    "StandardRateRule",
    "aggregate_orders",
    "build_stats",
    "build_summary",
    "calculate_contract_freight",
    "calculate_insurance",
    "calculate_packaging",
    "calculate_standard_freight",
    "classify_route",
    "default_output_path",
    "get_field",
    "is_summary_row",
    "normalize_province",
    "process_row",
    "read_table",
    "requires_offline_approval",
    "write_report",
]
