"""
测试工具和fixtures
Test Utilities and Fixtures
"""

import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from bill_verifier.core.config import Config
from bill_verifier.modules.reconcile.models import ProcessingResult
from bill_verifier.modules.reconcile.rule_tables import RuleSet


@pytest.fixture
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir):
    """创建临时配置文件"""
    config_file = temp_dir / "config.yaml"
    config_content = """
app:
  name: "bill-verifier"
  version: "1.2.0"
  debug: true
  log_level: "DEBUG"

reconcile:
  mode: "contract"
  discrepancy_preview_limit: 20
  contract_rates:
    - destination_label: "同城"
      first_weight: 1
      first_price: 7
      step_weight: 1
      step_price: 1
    - destination_label: "其他异地"
      product_type: "顺丰标快"
      first_price: 12
      step_price: 3
  insurance_rules:
    - service_keyword: "保价"
      rate: 0.005
      min_fee: 1.5
  header_aliases:
    agent: ["寄件员工"]
"""
    config_file.write_text(config_content, encoding="utf-8")
    return config_file


@pytest.fixture
def config(temp_config_file):
    """测试配置实例"""
    return Config(str(temp_config_file))


@pytest.fixture
def rules():
    """内置默认规则快照"""
    return RuleSet()


@pytest.fixture
def standard_bill_rows():
    """标准模式账单：运费/包装/保价/其他服务 + 合计行"""
    return [
        {
            "序号": "1", "运单号": "SF001", "服务": "运费",
            "始发地(省名)": "广东", "目的地(省名)": "河南", "计费重量": "0.3",
            "应付金额": "11", "部门": "财务部", "付款方式": "寄付", "经手人": "张三",
            "系统匹配": "",
        },
        {
            "序号": "2", "运单号": "SF001", "服务": "包装服务",
            "服务备注": "F1纸箱:数量2,单价1.0|防水袋(大):数量3",
            "应付金额": "3.50", "部门": "", "付款方式": "", "经手人": "",
            "系统匹配": "线下审批",
        },
        {
            "序号": "3", "运单号": "SF002", "服务": "运费",
            "始发地(省名)": "广东省", "目的地(省名)": "河南省", "计费重量": "1.8",
            "应付金额": "20", "部门": "行政部", "付款方式": "到付", "经手人": "李四",
        },
        {
            "序号": "4", "运单号": "SF002", "服务": "保价",
            "声明价值": "50", "服务备注": "保价", "应付金额": "1",
            "部门": "行政部", "付款方式": "到付", "经手人": "李四",
        },
        {
            "序号": "5", "运单号": "SF003", "服务": "运费",
            "始发地(省名)": "云南", "目的地(省名)": "西藏", "计费重量": "2",
            "应付金额": "30", "部门": "财务部", "付款方式": "寄付", "经手人": "王五",
            "系统匹配": "（需线下确认）",
        },
        {
            "序号": "合计", "运单号": "", "服务": "",
            "应付金额": "65.50",
        },
    ]


def _make_result(tracking_number="SF001", theoretical=10.0, diff=0.0, result_text="运费一致", row_number=2):
    """构造核对结果"""
    return ProcessingResult(
        row_number=row_number,
        tracking_number=tracking_number,
        origin="广东",
        destination="河南",
        category="运费",
        theoretical_amount=theoretical,
        diff_amount=diff,
        result_text=result_text,
    )


@pytest.fixture
def result_factory():
    """核对结果工厂"""
    return _make_result
