"""
功能模块
Modules

提供账单核对等业务模块
"""

from .reconcile.service import ReconcileService

__all__ = ["ReconcileService"]
