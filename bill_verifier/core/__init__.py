"""
核心模块
Core Module

提供配置管理、日志系统、异常类型等基础能力
"""

from .config import Config, get_config
from .error_handler import BillFileError, BillVerifierError, ConfigError, ReconcileInputError
from .logger import Logger, get_logger

__all__ = [
    "BillFileError",
    "BillVerifierError",
    "Config",
    "ConfigError",
    "Logger",
    "ReconcileInputError",
    "get_config",
    "get_logger",
]
