"""Adapters for the monitoring backend: data sources and job action services."""

from .base import JobActionService, MonitoringDataSource

__all__ = ["JobActionService", "MonitoringDataSource"]
