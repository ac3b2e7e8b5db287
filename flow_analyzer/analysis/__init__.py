"""Hotspot and global analytics aggregation."""

from .analytics import AnalyticsAggregator, average_call_depth
from .hotspots import HotspotAggregator

__all__ = ["AnalyticsAggregator", "HotspotAggregator", "average_call_depth"]
