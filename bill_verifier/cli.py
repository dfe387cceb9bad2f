"""
快递账单核对 CLI

所有命令输出结构化 JSON，方便脚本或 Agent 解析结果。

用法:
    python -m bill_verifier.cli reconcile --bill bill.xlsx --output output/result.xlsx
    python -m bill_verifier.cli reconcile --bill bill.csv --mode contract --rates contract_rates.xlsx
    python -m bill_verifier.cli rules --action show --mode contract
    python -m bill_verifier.cli rules --action defaults
    python -m bill_verifier.cli normalize --text 广东省 上海市嘉定区 XINJIANG
"""

import argparse
import asyncio
import json
import sys
from typing import Any


def _json_out(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def _rules_payload(rules: Any, mode: str | None) -> dict[str, Any]:
    tables = rules.to_dict()
    if mode == "contract":
        tables.pop("standard_rates", None)
    elif mode == "standard":
        tables.pop("contract_rates", None)
    return tables


async def cmd_reconcile(args: argparse.Namespace) -> None:
    from bill_verifier.core.config import get_config
    from bill_verifier.core.error_handler import BillVerifierError
    from bill_verifier.modules.reconcile import ReconcileService, default_output_path, write_report

    config = get_config(args.config) if args.config else get_config()
    reconcile_cfg = config.get_section("reconcile", {})
    service = ReconcileService(reconcile_cfg)

    try:
        report = service.run_file(
            args.bill,
            rates_path=args.rates,
            packaging_path=args.packaging,
            insurance_path=args.insurance,
            mode=args.mode,
        )
    except BillVerifierError as e:
        _json_out({"error": e.message, **e.to_dict()})
        return

    limit = args.limit or int(reconcile_cfg.get("discrepancy_preview_limit", 50))
    payload: dict[str, Any] = {
        "mode": report.mode,
        "stats": report.stats.to_dict(),
        "errors": [{"row_number": e.row_number, "message": e.message} for e in report.errors],
        "review_rows": [r.to_dict() for r in report.review_rows(limit)],
        "summary": report.summary,
    }

    if not args.no_output:
        output_path = args.output or default_output_path(config.get("app.output_dir", "output"))
        payload["output_file"] = str(write_report(report, output_path))

    _json_out(payload)


async def cmd_rules(args: argparse.Namespace) -> None:
    from bill_verifier.core.config import get_config
    from bill_verifier.modules.reconcile import RuleSet

    if args.action == "defaults":
        _json_out({"source": "builtin", "rules": _rules_payload(RuleSet(), args.mode)})
        return

    reconcile_cfg = get_config().get_section("reconcile", {})
    rules = RuleSet.from_config(reconcile_cfg)
    mode = args.mode or reconcile_cfg.get("mode", "standard")
    _json_out({"source": "config", "mode": mode, "counts": rules.counts(), "rules": _rules_payload(rules, mode)})


async def cmd_normalize(args: argparse.Namespace) -> None:
    from bill_verifier.modules.reconcile import normalize_province

    _json_out({"results": [{"input": text, "province": normalize_province(text)} for text in args.text]})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bill-verifier",
        description="快递账单核对工具 CLI",
    )
    sub = parser.add_subparsers(dest="command", help="可用命令")

    # reconcile
    p = sub.add_parser("reconcile", help="核对快递账单")
    p.add_argument("--bill", required=True, help="账单文件 (.xlsx/.csv)")
    p.add_argument("--mode", choices=["standard", "contract"], default=None, help="核对模式，默认取配置")
    p.add_argument("--rates", default=None, help="运费标准文件")
    p.add_argument("--packaging", default=None, help="包装材料模板文件")
    p.add_argument("--insurance", default=None, help="保价标准文件")
    p.add_argument("--output", default=None, help="结果输出路径 (.xlsx)，默认写到 app.output_dir")
    p.add_argument("--no-output", action="store_true", help="只输出统计，不写结果文件")
    p.add_argument("--limit", type=int, default=None, help="需复核明细输出条数")
    p.add_argument("--config", default=None, help="配置文件路径")

    # rules
    p = sub.add_parser("rules", help="查看核算规则")
    p.add_argument("--action", required=True, choices=["show", "defaults"])
    p.add_argument("--mode", choices=["standard", "contract"], default=None, help="只显示该模式的运费规则")

    # normalize
    p = sub.add_parser("normalize", help="地名标准化")
    p.add_argument("--text", nargs="+", required=True, help="待标准化的地名")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    dispatch = {
        "reconcile": cmd_reconcile,
        "rules": cmd_rules,
        "normalize": cmd_normalize,
    }

    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        pass
    except Exception as e:
        _json_out({"error": str(e)})
        sys.exit(1)


if __name__ == "__main__":
    main()
