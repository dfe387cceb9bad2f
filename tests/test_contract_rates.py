"""合同运费线路判定与计价测试。"""

from bill_verifier.modules.reconcile.contract import (
    ROUTE_CASCADE,
    Shipment,
    calculate_contract_freight,
    calculate_route_table_freight,
    classify_route,
    has_contract_tags,
    match_route_table,
    price_contract,
    resolve_contract_rule,
)
from bill_verifier.modules.reconcile.models import ContractRateRule
from bill_verifier.modules.reconcile.rule_tables import DEFAULT_CONTRACT_RATES


def _shipment(origin, destination, product="顺丰标快", weight=1.0, origin_city="", destination_city=""):
    return Shipment(
        origin_province=origin,
        destination_province=destination,
        origin_city=origin_city,
        destination_city=destination_city,
        product_type=product,
        weight=weight,
    )


class TestClassifyRoute:
    def test_cascade_order(self):
        assert [route.name for route in ROUTE_CASCADE] == ["同城", "江浙沪", "偏远(上海发)"]

    def test_same_city_by_city(self):
        assert classify_route(_shipment("江苏", "江苏", origin_city="苏州", destination_city="苏州")) == "同城"

    def test_same_city_hub_fallback_without_city(self):
        assert classify_route(_shipment("上海", "上海")) == "同城"

    def test_same_city_has_priority_over_cluster(self):
        shipment = _shipment("上海", "上海", origin_city="嘉定", destination_city="嘉定")
        assert classify_route(shipment) == "同城"

    def test_cluster(self):
        assert classify_route(_shipment("江苏", "浙江")) == "江浙沪"
        assert classify_route(_shipment("江苏", "江苏", origin_city="苏州", destination_city="南京")) == "江浙沪"

    def test_remote_only_from_hub(self):
        assert classify_route(_shipment("上海", "新疆")) == "偏远(上海发)"
        assert classify_route(_shipment("广东", "新疆")) == "异地标快"

    def test_other_sub_category(self):
        assert classify_route(_shipment("广东", "北京", product="顺丰特快")) == "异地特快"
        assert classify_route(_shipment("广东", "北京", product="顺丰标快")) == "异地标快"


class TestResolveContractRule:
    def test_other_prefers_product_type(self):
        _, rule = resolve_contract_rule(_shipment("广东", "北京", product="顺丰特快"), DEFAULT_CONTRACT_RATES)
        assert rule.product_type == "顺丰特快"

    def test_other_keyword_in_label(self):
        rules = [ContractRateRule("其他异地特快", first_price=16), ContractRateRule("其他异地标快", first_price=12)]
        _, rule = resolve_contract_rule(_shipment("广东", "北京", product="标快"), rules)
        assert rule.destination_label == "其他异地标快"

    def test_fallback_any_rule_naming_product(self):
        rules = [ContractRateRule("同城标快", first_price=5), ContractRateRule("标快线路", first_price=9)]
        _, rule = resolve_contract_rule(_shipment("广东", "北京", product="标快"), rules)
        assert rule.destination_label == "标快线路"

    def test_fallback_generic_other_only_for_standard(self):
        rules = [ContractRateRule("其他", first_price=11)]
        _, rule = resolve_contract_rule(_shipment("广东", "北京", product="标快"), rules)
        assert rule is rules[0]
        _, rule = resolve_contract_rule(_shipment("广东", "北京", product="特快"), rules)
        assert rule is None


class TestCalculateContractFreight:
    def test_same_city_scenario(self):
        shipment = _shipment("上海", "上海", weight=2, origin_city="上海", destination_city="上海")
        outcome = calculate_contract_freight(shipment, DEFAULT_CONTRACT_RATES)
        # 8 + ceil(1 / 1) * 2
        assert outcome.theoretical_amount == 10
        assert outcome.category == "同城(上海)(标快/特快)"
        assert outcome.formula == "8 + 1 * 2 = 10.00"

    def test_cluster_within_first_weight(self):
        outcome = calculate_contract_freight(_shipment("江苏", "浙江", weight=0.6), DEFAULT_CONTRACT_RATES)
        assert outcome.theoretical_amount == 10

    def test_remote(self):
        outcome = calculate_contract_freight(_shipment("上海", "新疆", weight=3), DEFAULT_CONTRACT_RATES)
        assert outcome.theoretical_amount == 40

    def test_other_premium(self):
        outcome = calculate_contract_freight(_shipment("广东", "北京", product="顺丰特快", weight=1.5), DEFAULT_CONTRACT_RATES)
        assert outcome.theoretical_amount == 21
        assert outcome.category == "其他异地(顺丰特快)"

    def test_missing_rule_names_route_class(self):
        rules = [ContractRateRule("同城", first_price=7)]
        outcome = calculate_contract_freight(_shipment("广东", "北京", product="顺丰标快"), rules)
        assert outcome.theoretical_amount == 0
        assert outcome.result_text == "未找到运费标准"
        assert outcome.reason_text == "满足逻辑[异地标快]但未在配置中找到对应规则"

    def test_non_positive_step_weight_treated_as_one(self):
        rule = ContractRateRule("江浙沪", first_weight=1, first_price=10, step_weight=0, step_price=2)
        assert price_contract(rule, 3.2)[0] == 10 + 3 * 2

    def test_extra_weight_floors_at_zero(self):
        rule = ContractRateRule("江浙沪", first_weight=2, first_price=10, step_weight=1, step_price=2)
        assert price_contract(rule, 0.5)[0] == 10


class TestRouteTable:
    rules = [
        ContractRateRule("河南", origin="广东", product_type="顺丰标快", first_price=10, step_price=3),
        ContractRateRule("河南", origin="广东", first_price=9, step_price=2),
        ContractRateRule("默认", first_price=20, step_price=5),
    ]

    def test_has_no_contract_tags(self):
        assert not has_contract_tags(self.rules)
        assert has_contract_tags(DEFAULT_CONTRACT_RATES)

    def test_product_type_containment(self):
        assert match_route_table(_shipment("广东", "河南", product="标快"), self.rules) is self.rules[0]

    def test_rule_without_product_type(self):
        assert match_route_table(_shipment("广东", "河南", product="特快"), self.rules) is self.rules[1]

    def test_default_destination(self):
        assert match_route_table(_shipment("广东", "四川"), self.rules) is self.rules[2]

    def test_first_weight_price_and_stepping(self):
        outcome = calculate_route_table_freight(_shipment("广东", "河南", product="特快", weight=0.8), self.rules)
        assert outcome.theoretical_amount == 9
        assert outcome.category == "运费"

        outcome = calculate_route_table_freight(_shipment("广东", "河南", product="标快", weight=2.5), self.rules)
        assert outcome.theoretical_amount == 10 + 2 * 3
        assert outcome.category == "运费(顺丰标快)"

    def test_no_match(self):
        outcome = calculate_route_table_freight(_shipment("云南", "河北"), self.rules[:2], "云南", "河北")
        assert outcome.result_text == "未找到运费标准"
        assert "云南->河北" in outcome.reason_text
