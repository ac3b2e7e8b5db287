"""
Flow Analyzer - Contract Execution Trace Analysis Tool
"""

__version__ = "1.0.0"

from .core.analyzer import FlowAnalyzer
from .core.exceptions import AggregationUnavailable, InvalidIngestRequest
from .core.types import AnalyzerConfig, ExecutionRecord, ExecutionStep, FunctionStatistics

__all__ = [
    "FlowAnalyzer",
    "AggregationUnavailable",
    "InvalidIngestRequest",
    "AnalyzerConfig",
    "ExecutionRecord",
    "ExecutionStep",
    "FunctionStatistics",
]
