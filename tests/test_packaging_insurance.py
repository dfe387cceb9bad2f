"""包装耗材与保价费核算测试。"""

from bill_verifier.modules.reconcile.insurance import calculate_insurance, select_insurance_rule
from bill_verifier.modules.reconcile.models import InsuranceRule
from bill_verifier.modules.reconcile.packaging import calculate_packaging, parse_packaging_remark
from bill_verifier.modules.reconcile.rule_tables import DEFAULT_INSURANCE_RULES, DEFAULT_PACKAGING_TEMPLATE


class TestPackaging:
    def test_template_prices(self):
        outcome = calculate_packaging("F1纸箱:数量2,单价1.0|防水袋(大):数量3", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 3.5
        assert outcome.reason_text == ""
        assert outcome.category == "包装材料"
        assert outcome.packaging_detail == "F1纸箱×2+防水袋(大)×3 合计3.50"

    def test_full_width_separators(self):
        items, candidates = parse_packaging_remark("F2纸箱：数量1，单价2.0 | 气泡膜:数量2")
        assert candidates == 2
        assert [(i.name, i.quantity, i.bill_unit_price) for i in items] == [
            ("F2纸箱", 1, 2.0),
            ("气泡膜", 2, None),
        ]

    def test_price_mismatch_uses_template(self):
        outcome = calculate_packaging("F2纸箱:数量1,单价2.5", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 2.0
        assert outcome.reason_text == "单价与模板不符(F2纸箱:账单2.5/模板2)"

    def test_small_price_difference_tolerated(self):
        outcome = calculate_packaging("F2纸箱:数量1,单价2.005", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.reason_text == ""

    def test_template_missing_uses_bill_price(self):
        outcome = calculate_packaging("神秘箱:数量2,单价3", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 6.0
        assert outcome.reason_text == "模板缺失(神秘箱)"

    def test_unknown_material_without_price(self):
        outcome = calculate_packaging("神秘箱:数量2|F1纸箱:数量1", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 1.0
        assert outcome.reason_text == "未知材料且无单价(神秘箱)"

    def test_name_whitespace_ignored(self):
        outcome = calculate_packaging("F1 纸箱:数量1", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 1.0

    def test_unparseable_remark(self):
        for remark in ("纸箱若干", "F1纸箱 数量两个"):
            outcome = calculate_packaging(remark, DEFAULT_PACKAGING_TEMPLATE)
            assert outcome.theoretical_amount == 0
            assert outcome.result_text == "无法提取包装信息"

    def test_items_without_quantity_are_ignored(self):
        outcome = calculate_packaging("加急处理|F1纸箱:数量1", DEFAULT_PACKAGING_TEMPLATE)
        assert outcome.theoretical_amount == 1.0
        assert outcome.result_text == ""


class TestInsurance:
    def test_min_fee_applies(self):
        rules = [InsuranceRule("保价", rate=0.01, min_fee=2.0)]
        outcome = calculate_insurance("50", "", rules)
        assert outcome.theoretical_amount == 2.0
        assert outcome.category == "保价"
        assert outcome.insurance_detail == "保价(1.00%) 价值50"

    def test_rate_applies(self):
        outcome = calculate_insurance("1000", "足额保", DEFAULT_INSURANCE_RULES)
        assert outcome.theoretical_amount == 8.0

    def test_missing_declared_value_is_not_an_error(self):
        outcome = calculate_insurance("", "保价", DEFAULT_INSURANCE_RULES)
        assert outcome.theoretical_amount == 0
        assert outcome.category == "保价"
        assert outcome.result_text == "无法核算(缺失声明价值)"

    def test_zero_or_invalid_declared_value(self):
        for value in ("0", "abc"):
            outcome = calculate_insurance(value, "", DEFAULT_INSURANCE_RULES)
            assert outcome.theoretical_amount == 0
            assert outcome.result_text == "声明价值为0"

    def test_no_rules_configured(self):
        outcome = calculate_insurance("100", "", [])
        assert outcome.theoretical_amount == 0
        assert outcome.reason_text == "未配置保价费率"

    def test_rule_selection_order(self):
        basic, full, generic = DEFAULT_INSURANCE_RULES
        assert select_insurance_rule("足额保服务", DEFAULT_INSURANCE_RULES) is full
        assert select_insurance_rule("", DEFAULT_INSURANCE_RULES) is generic
        assert select_insurance_rule("", [basic, full]) is basic
        assert select_insurance_rule("", []) is None
