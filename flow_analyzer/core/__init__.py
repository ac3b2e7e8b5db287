"""Core components for flow analysis."""

from .analyzer import FlowAnalyzer
from .exceptions import AggregationUnavailable, FlowAnalyzerError, InvalidIngestRequest
from .types import AnalyzerConfig, ExecutionRecord, ExecutionStep

__all__ = [
    "FlowAnalyzer",
    "AggregationUnavailable",
    "FlowAnalyzerError",
    "InvalidIngestRequest",
    "AnalyzerConfig",
    "ExecutionRecord",
    "ExecutionStep",
]
