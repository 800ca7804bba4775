"""Owner insights module."""

from .aggregator import DashboardSummary, InsightsAggregator

__all__ = ["DashboardSummary", "InsightsAggregator"]
