"""
Exceptions raised by the flow analyzer.
"""


class FlowAnalyzerError(Exception):
    """Base class for flow analyzer errors."""


class InvalidIngestRequest(FlowAnalyzerError, ValueError):
    """An ingest payload failed validation."""


class CounterStoreError(FlowAnalyzerError):
    """A counter store could not read or write an entry."""


class RecordStoreError(FlowAnalyzerError):
    """A record store could not read or write a flow."""


class AggregationUnavailable(FlowAnalyzerError):
    """
    Function statistics could not be updated.

    Raised instead of dropping the update, since a lost increment silently
    skews hotspot rankings.
    """
