"""
合同运费核算
Contract-mode freight

按线路类别优先级判定（同城 > 江浙沪 > 上海发偏远 > 其他异地），
再在规则表中按目的地标签关键字选取规则，首重 + 续重计价。
规则表不含线路关键字时，退回按始发/目的地精确查表。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from bill_verifier.modules.reconcile.locality import normalize_province
from bill_verifier.modules.reconcile.models import CalcOutcome, ContractRateRule, count_steps, round_money

HUB_PROVINCE = "上海"
CLUSTER_PROVINCES = frozenset({"江苏", "浙江", "上海"})
REMOTE_PROVINCES = frozenset({"新疆", "西藏", "甘肃", "青海"})

TAG_SAME_CITY = "同城"
TAG_CLUSTER = "江浙沪"
TAG_REMOTE = "偏远"
TAG_OTHER = ("异地", "其他", "Rest", "Other")
TAG_PREMIUM = "特快"
TAG_STANDARD = "标快"

CONTRACT_TAGS = (TAG_SAME_CITY, TAG_CLUSTER, TAG_REMOTE)
DEFAULT_ROUTE_DESTINATION = "默认"


@dataclass(frozen=True, slots=True)
class Shipment:
    """参与线路判定的运单要素（省份已标准化）。"""

    origin_province: str
    destination_province: str
    origin_city: str = ""
    destination_city: str = ""
    product_type: str = ""
    weight: float = 0.0

    @property
    def is_premium(self) -> bool:
        return TAG_PREMIUM in self.product_type


@dataclass(frozen=True, slots=True)
class RouteClass:
    name: str
    applies: Callable[[Shipment], bool]
    select: Callable[[Shipment, Sequence[ContractRateRule]], ContractRateRule | None]


def _is_same_city(s: Shipment) -> bool:
    if s.origin_city and s.destination_city and s.origin_city == s.destination_city:
        return True
    # 缺少城市数据时，两端均为上海视为同城
    return s.origin_province == HUB_PROVINCE and s.destination_province == HUB_PROVINCE


def _is_cluster(s: Shipment) -> bool:
    return s.origin_province in CLUSTER_PROVINCES and s.destination_province in CLUSTER_PROVINCES


def _is_remote_from_hub(s: Shipment) -> bool:
    return s.origin_province == HUB_PROVINCE and s.destination_province in REMOTE_PROVINCES


def find_labeled_rule(
    rules: Sequence[ContractRateRule],
    label_keywords: Sequence[str],
    product_keyword: str | None = None,
) -> ContractRateRule | None:
    """
    按目的地标签关键字查找规则。

    指定 product_keyword 时，优先规则产品类型包含该词，其次标签本身包含该词；
    都没有则返回 None。
    """
    candidates = [r for r in rules if any(k in r.destination_label for k in label_keywords)]

    if product_keyword:
        for rule in candidates:
            if product_keyword in rule.product_type:
                return rule
        for rule in candidates:
            if product_keyword in rule.destination_label:
                return rule
        return None

    return candidates[0] if candidates else None


def _select_keyword(tag: str) -> Callable[[Shipment, Sequence[ContractRateRule]], ContractRateRule | None]:
    def select(_s: Shipment, rules: Sequence[ContractRateRule]) -> ContractRateRule | None:
        return find_labeled_rule(rules, (tag,))

    return select


def _select_other(s: Shipment, rules: Sequence[ContractRateRule]) -> ContractRateRule | None:
    product_keyword = TAG_PREMIUM if s.is_premium else TAG_STANDARD

    rule = find_labeled_rule(rules, TAG_OTHER, product_keyword)
    if rule:
        return rule

    for candidate in rules:
        label = candidate.destination_label
        if product_keyword in label and TAG_SAME_CITY not in label and TAG_CLUSTER not in label:
            return candidate

    if not s.is_premium:
        return find_labeled_rule(rules, TAG_OTHER)
    return None


ROUTE_CASCADE: tuple[RouteClass, ...] = (
    RouteClass("同城", _is_same_city, _select_keyword(TAG_SAME_CITY)),
    RouteClass("江浙沪", _is_cluster, _select_keyword(TAG_CLUSTER)),
    RouteClass("偏远(上海发)", _is_remote_from_hub, _select_keyword(TAG_REMOTE)),
)


def classify_route(shipment: Shipment) -> str:
    """返回线路类别名称。"""
    for route in ROUTE_CASCADE:
        if route.applies(shipment):
            return route.name
    return "异地特快" if shipment.is_premium else "异地标快"


def resolve_contract_rule(
    shipment: Shipment,
    rules: Sequence[ContractRateRule],
) -> tuple[str, ContractRateRule | None]:
    for route in ROUTE_CASCADE:
        if route.applies(shipment):
            return route.name, route.select(shipment, rules)
    return classify_route(shipment), _select_other(shipment, rules)


def has_contract_tags(rules: Sequence[ContractRateRule]) -> bool:
    return any(tag in rule.destination_label for rule in rules for tag in CONTRACT_TAGS)


def price_contract(rule: ContractRateRule, weight: float) -> tuple[float, str]:
    """首重 + ceil(超出重量 / 续重) × 续重费，返回 (金额, 公式)。"""
    extra_weight = max(0.0, weight - rule.first_weight)
    steps = count_steps(extra_weight, rule.effective_step_weight)
    amount = round_money(rule.first_price + steps * rule.step_price)
    return amount, f"{rule.first_price:g} + {steps} * {rule.step_price:g} = {amount:.2f}"


def calculate_contract_freight(shipment: Shipment, rules: Sequence[ContractRateRule]) -> CalcOutcome:
    route_name, rule = resolve_contract_rule(shipment, rules)
    origin, destination = shipment.origin_province, shipment.destination_province

    if rule is None:
        return CalcOutcome(
            theoretical_amount=0.0,
            result_text="未找到运费标准",
            reason_text=f"满足逻辑[{route_name}]但未在配置中找到对应规则",
            freight_detail=f"{origin}-{destination} {shipment.product_type} 无报价",
        )

    amount, formula = price_contract(rule, shipment.weight)
    return CalcOutcome(
        theoretical_amount=amount,
        category=rule.display_label,
        freight_detail=f"{origin}-{destination} {amount:.2f}",
        formula=formula,
    )


def match_route_table(
    shipment: Shipment,
    rules: Sequence[ContractRateRule],
) -> ContractRateRule | None:
    """无线路关键字的规则表：按始发/目的地精确匹配，再按产品类型择优。"""
    route_matches = []
    for rule in rules:
        rule_origin = normalize_province(rule.origin)
        rule_destination = normalize_province(rule.destination_label)
        origin_ok = rule_origin == "" or rule_origin == shipment.origin_province
        destination_ok = rule_destination in (shipment.destination_province, DEFAULT_ROUTE_DESTINATION)
        if origin_ok and destination_ok:
            route_matches.append(rule)

    if not route_matches:
        return None

    service_type = shipment.product_type.strip().upper()
    for rule in route_matches:
        rule_type = rule.product_type.strip().upper()
        if rule_type and (rule_type in service_type or service_type in rule_type):
            return rule

    for rule in route_matches:
        if not rule.product_type.strip():
            return rule

    return route_matches[0]


def calculate_route_table_freight(
    shipment: Shipment,
    rules: Sequence[ContractRateRule],
    origin_raw: str = "",
    destination_raw: str = "",
) -> CalcOutcome:
    rule = match_route_table(shipment, rules)
    destination = shipment.destination_province

    if rule is None:
        return CalcOutcome(
            theoretical_amount=0.0,
            result_text="未找到运费标准",
            reason_text=f"未找到 {origin_raw}->{destination_raw} 的报价",
            freight_detail=f"{destination} 无报价",
        )

    if shipment.weight <= rule.first_weight:
        amount = round_money(rule.first_price)
        formula = f"{amount:.2f}"
    else:
        amount, formula = price_contract(rule, shipment.weight)

    suffix = f"({rule.product_type})" if rule.product_type.strip() else ""
    return CalcOutcome(
        theoretical_amount=amount,
        category=f"运费{suffix}",
        freight_detail=f"{shipment.origin_province}-{destination} {amount:.2f}",
        formula=formula,
    )
