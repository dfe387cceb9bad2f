"""
快递账单核对工具
Courier Bill Verifier

按运费/包装/保价标准逐行核算快递账单，并按运单汇总统计
"""

__version__ = "1.2.0"
__author__ = "Project Team"

from .core.config import Config
from .core.logger import Logger

__all__ = [
    "Config",
    "Logger",
    "__version__",
]
