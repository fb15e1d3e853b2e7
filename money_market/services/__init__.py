"""Service modules"""
from .health_monitor import AccountReport, HealthMonitor

__all__ = ["AccountReport", "HealthMonitor"]
