"""
配置模型与验证
Configuration Models and Validation

使用Pydantic进行配置验证
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class ReconcileMode(str, Enum):
    """核对模式枚举"""
    STANDARD = "standard"
    CONTRACT = "contract"


class StandardRateConfig(BaseModel):
    """标准运费规则（按首重段 + 续重0.5kg计费）"""
    origin: str = Field(default="", description="始发地，留空表示任意始发地")
    destination: str = Field(..., min_length=1, description="目的地，可为“其他”兜底")
    price_under_05: float = Field(default=0.0, ge=0, description="0<X≤0.5kg运费")
    price_05_to_1: float = Field(default=0.0, ge=0, description="0.5<X≤1kg运费")
    step_price: float = Field(default=0.0, ge=0, description="续重每0.5kg运费")


class ContractRateConfig(BaseModel):
    """合同运费规则（首重 + 续重）"""
    origin: str = Field(default="", description="始发地")
    destination_label: str = Field(..., min_length=1, description="目的地/线路标签，如 同城、江浙沪、偏远、其他异地")
    product_type: str = Field(default="", description="产品类型，如 顺丰标快、顺丰特快")
    first_weight: float = Field(default=1.0, ge=0, description="首重(kg)")
    first_price: float = Field(default=0.0, ge=0, description="首重费")
    step_weight: float = Field(default=1.0, description="续重(kg)，≤0 时按1计")
    step_price: float = Field(default=0.0, ge=0, description="续重费")


class PackagingMaterialConfig(BaseModel):
    """包装材料模板"""
    material_name: str = Field(..., min_length=1, description="物资名称")
    unit_price: float = Field(default=0.0, ge=0, description="单价")


class InsuranceRuleConfig(BaseModel):
    """保价规则"""
    service_keyword: str = Field(default="保价", description="服务名称关键字")
    rate: float = Field(default=0.0, ge=0, description="费率（小数）")
    min_fee: float = Field(default=0.0, ge=0, description="最低收费")


class AppConfig(BaseModel):
    """应用配置模型"""
    name: str = Field(default="bill-verifier", description="应用名称")
    version: str = Field(default="1.2.0", description="版本号")
    debug: bool = Field(default=False, description="调试模式")
    log_level: str = Field(default="INFO", description="日志级别")
    logs_dir: str = Field(default="logs", description="日志目录")
    output_dir: str = Field(default="output", description="核对结果输出目录")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """验证日志级别"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}, got {v}")
        return v


class ReconcileConfig(BaseModel):
    """核对配置模型，规则表缺省时使用内置标准"""
    mode: ReconcileMode = ReconcileMode.STANDARD
    discrepancy_preview_limit: int = Field(default=50, ge=1, le=10000, description="差异明细预览条数")
    standard_rates: Optional[List[StandardRateConfig]] = Field(default=None, description="标准运费规则")
    contract_rates: Optional[List[ContractRateConfig]] = Field(default=None, description="合同运费规则")
    packaging_template: Optional[List[PackagingMaterialConfig]] = Field(default=None, description="包装材料模板")
    insurance_rules: Optional[List[InsuranceRuleConfig]] = Field(default=None, description="保价规则")
    header_aliases: Dict[str, List[str]] = Field(default_factory=dict, description="账单表头别名覆盖")


class ConfigModel(BaseModel):
    """完整配置模型"""
    app: AppConfig = Field(default_factory=AppConfig)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)

    def to_dict(self) -> Dict:
        """转换为字典"""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict) -> "ConfigModel":
        """从字典创建配置"""
        return cls(**data)
