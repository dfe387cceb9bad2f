"""
核算规则表
Rule tables: built-in defaults, row parsing and the per-run snapshot

一次核对开始时将规则表冻结为 RuleSet，运行期间不受配置修改影响。
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable, Mapping, Sequence

from bill_verifier.core.error_handler import ConfigError
from bill_verifier.modules.reconcile.fields import get_field
from bill_verifier.modules.reconcile.models import (
    ContractRateRule,
    InsuranceRule,
    PackagingTemplateEntry,
    StandardRateRule,
    to_float,
)

DEFAULT_STANDARD_RATES: tuple[StandardRateRule, ...] = (
    StandardRateRule(origin="广东", destination="广东", price_under_05=10, price_05_to_1=11, step_price=1),
    StandardRateRule(origin="广东", destination="河南", price_under_05=11, price_05_to_1=12.6, step_price=2.1),
    StandardRateRule(origin="广东", destination="上海", price_under_05=11, price_05_to_1=12.6, step_price=3.15),
    StandardRateRule(origin="广东", destination="北京", price_under_05=12, price_05_to_1=13.5, step_price=4.0),
    StandardRateRule(origin="上海", destination="四川", price_under_05=13, price_05_to_1=15, step_price=5.0),
    StandardRateRule(origin="北京", destination="其他", price_under_05=10, price_05_to_1=12, step_price=3),
)

DEFAULT_CONTRACT_RATES: tuple[ContractRateRule, ...] = (
    ContractRateRule("同城(上海)", product_type="标快/特快", first_weight=1, first_price=8, step_weight=1, step_price=2),
    ContractRateRule("江浙沪", product_type="标快/特快", first_weight=1, first_price=10, step_weight=1, step_price=2),
    ContractRateRule("偏远(甘青宁新藏)", product_type="标快/特快", first_weight=1, first_price=20, step_weight=1, step_price=10),
    ContractRateRule("其他异地", product_type="顺丰标快", first_weight=1, first_price=12, step_weight=1, step_price=3),
    ContractRateRule("其他异地", product_type="顺丰特快", first_weight=1, first_price=16, step_weight=1, step_price=5),
)

DEFAULT_PACKAGING_TEMPLATE: tuple[PackagingTemplateEntry, ...] = (
    PackagingTemplateEntry("F1纸箱", 1.0),
    PackagingTemplateEntry("F2纸箱", 2.0),
    PackagingTemplateEntry("F3纸箱", 3.0),
    PackagingTemplateEntry("F4纸箱", 4.0),
    PackagingTemplateEntry("F5纸箱", 5.0),
    PackagingTemplateEntry("F6纸箱", 6.0),
    PackagingTemplateEntry("防水袋(大)", 0.5),
    PackagingTemplateEntry("防水袋(中)", 0.3),
    PackagingTemplateEntry("防水袋(小)", 0.2),
    PackagingTemplateEntry("气泡膜", 1.5),
)

DEFAULT_INSURANCE_RULES: tuple[InsuranceRule, ...] = (
    InsuranceRule("基础保", rate=0.01, min_fee=1.0),
    InsuranceRule("足额保", rate=0.008, min_fee=2.0),
    InsuranceRule("保价", rate=0.01, min_fee=1.0),
)

# 规则表表头别名
_STANDARD_ORIGIN = (
    "始发地(省名)", "始发地", "始发省", "始发城市", "始发地区", "始发",
    "原寄地", "原寄省份", "原寄城市", "原寄地区", "原寄",
    "寄方省份", "寄方城市", "寄方地区", "寄件省份",
    "Start", "Origin", "From",
)
_STANDARD_DESTINATION = (
    "目的地(省名)", "目的地", "目的省", "目的城市", "目的地区",
    "收方省份", "收方城市", "收方地区", "收件省份",
    "End", "Dest", "Destination", "To",
    "省份", "Province", "地区", "Area",
)
_STANDARD_TIER0 = ("0<X≤0.5kg运费", "0.5kg内", "Under0.5", "首重", "首重费", "首重价格", "0-0.5", "<=0.5")
_STANDARD_TIER1 = ("0.5<X≤1kg运费", "0.5-1kg", "0.5To1", "1kg内", "<=1", "首重1kg", "基础运费")
_STANDARD_STEP = ("续重0.5kg", "Step", "续重", "续重费", "续重价格", "续重单价")

_CONTRACT_ORIGIN = ("始发地", "始发省", "Start", "原寄地", "寄方省份", "Origin")
_CONTRACT_DESTINATION = ("目的地", "省份", "Province", "Dest", "地区", "Area", "Destination")
_CONTRACT_PRODUCT = ("产品类型", "产品", "Product Type", "Service Type", "业务类型")
_CONTRACT_FIRST_WEIGHT = ("首重", "FirstWeight", "首重重量")
_CONTRACT_FIRST_PRICE = ("首重费", "FirstPrice", "首重价格")
_CONTRACT_STEP_WEIGHT = ("续重", "StepWeight", "续重重量")
_CONTRACT_STEP_PRICE = ("续重费", "StepPrice", "续重价格")

_MATERIAL_NAME = ("物资名称", "Material", "包装材料", "材料名称")
_MATERIAL_PRICE = ("单价", "含税单价", "Price", "价格")

_INSURANCE_NAME = ("服务名称", "Service", "保价类型", "项目")
_INSURANCE_RATE = ("费率", "Rate", "系数")
_INSURANCE_MIN_FEE = ("最低收费", "MinFee", "起步价", "最低价")


def _number(row: Mapping[str, Any], aliases: Sequence[str]) -> float:
    value = to_float(get_field(row, aliases))
    return 0.0 if value is None else value


def parse_standard_rates(rows: Iterable[Mapping[str, Any]]) -> list[StandardRateRule]:
    """解析标准运费表，始发地可空（任意始发地），缺目的地的行丢弃。"""
    rules = []
    for row in rows:
        destination = get_field(row, _STANDARD_DESTINATION)
        if not destination:
            continue
        rules.append(
            StandardRateRule(
                destination=destination,
                origin=get_field(row, _STANDARD_ORIGIN),
                price_under_05=_number(row, _STANDARD_TIER0),
                price_05_to_1=_number(row, _STANDARD_TIER1),
                step_price=_number(row, _STANDARD_STEP),
            )
        )
    return rules


def parse_contract_rates(rows: Iterable[Mapping[str, Any]]) -> list[ContractRateRule]:
    rules = []
    for row in rows:
        label = get_field(row, _CONTRACT_DESTINATION)
        if not label:
            continue
        rules.append(
            ContractRateRule(
                destination_label=label,
                origin=get_field(row, _CONTRACT_ORIGIN),
                product_type=get_field(row, _CONTRACT_PRODUCT),
                first_weight=_number(row, _CONTRACT_FIRST_WEIGHT),
                first_price=_number(row, _CONTRACT_FIRST_PRICE),
                step_weight=_number(row, _CONTRACT_STEP_WEIGHT),
                step_price=_number(row, _CONTRACT_STEP_PRICE),
            )
        )
    return rules


def parse_packaging_template(rows: Iterable[Mapping[str, Any]]) -> list[PackagingTemplateEntry]:
    entries = []
    for row in rows:
        name = get_field(row, _MATERIAL_NAME)
        if name:
            entries.append(PackagingTemplateEntry(name, _number(row, _MATERIAL_PRICE)))
    return entries


def parse_insurance_rules(rows: Iterable[Mapping[str, Any]]) -> list[InsuranceRule]:
    """解析保价标准，服务名称缺省为“保价”，费率与最低收费都为0的行丢弃。"""
    rules = []
    for row in rows:
        rule = InsuranceRule(
            service_keyword=get_field(row, _INSURANCE_NAME) or "保价",
            rate=_number(row, _INSURANCE_RATE),
            min_fee=_number(row, _INSURANCE_MIN_FEE),
        )
        if rule.rate > 0 or rule.min_fee > 0:
            rules.append(rule)
    return rules


@dataclass(frozen=True, slots=True)
class RuleSet:
    """单次核对使用的只读规则快照。"""

    standard_rates: tuple[StandardRateRule, ...] = DEFAULT_STANDARD_RATES
    contract_rates: tuple[ContractRateRule, ...] = DEFAULT_CONTRACT_RATES
    packaging_template: tuple[PackagingTemplateEntry, ...] = DEFAULT_PACKAGING_TEMPLATE
    insurance_rules: tuple[InsuranceRule, ...] = DEFAULT_INSURANCE_RULES

    @classmethod
    def freeze(
        cls,
        standard_rates: Iterable[StandardRateRule] | None = None,
        contract_rates: Iterable[ContractRateRule] | None = None,
        packaging_template: Iterable[PackagingTemplateEntry] | None = None,
        insurance_rules: Iterable[InsuranceRule] | None = None,
    ) -> "RuleSet":
        """复制传入的规则表；为 None 的表使用内置默认值。"""
        return cls(
            standard_rates=DEFAULT_STANDARD_RATES if standard_rates is None else tuple(standard_rates),
            contract_rates=DEFAULT_CONTRACT_RATES if contract_rates is None else tuple(contract_rates),
            packaging_template=(
                DEFAULT_PACKAGING_TEMPLATE if packaging_template is None else tuple(packaging_template)
            ),
            insurance_rules=DEFAULT_INSURANCE_RULES if insurance_rules is None else tuple(insurance_rules),
        )

    @classmethod
    def from_config(cls, reconcile_config: Mapping[str, Any]) -> "RuleSet":
        """
        从配置段落构建规则快照

        Args:
            reconcile_config: Config().reconcile 返回的字典

        Raises:
            ConfigError: 规则项缺少必填字段
        """
        try:
            standard = _build(reconcile_config.get("standard_rates"), StandardRateRule)
            contract = _build(reconcile_config.get("contract_rates"), ContractRateRule)
            packaging = _build(reconcile_config.get("packaging_template"), PackagingTemplateEntry)
            insurance = _build(reconcile_config.get("insurance_rules"), InsuranceRule)
        except TypeError as e:
            raise ConfigError(f"Invalid rule table in config: {e}") from e

        return cls.freeze(standard, contract, packaging, insurance)

    def rates_for(self, mode: str) -> tuple[StandardRateRule, ...] | tuple[ContractRateRule, ...]:
        return self.contract_rates if mode == "contract" else self.standard_rates

    def counts(self) -> dict[str, int]:
        return {
            "standard_rates": len(self.standard_rates),
            "contract_rates": len(self.contract_rates),
            "packaging_template": len(self.packaging_template),
            "insurance_rules": len(self.insurance_rules),
        }

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            "standard_rates": [asdict(r) for r in self.standard_rates],
            "contract_rates": [asdict(r) for r in self.contract_rates],
            "packaging_template": [asdict(r) for r in self.packaging_template],
            "insurance_rules": [asdict(r) for r in self.insurance_rules],
        }


def _build(items: Any, rule_cls: type) -> list | None:
    if items is None:
        return None
    return [rule_cls(**dict(item)) for item in items]
