"""
Global analytics over stored flows and function counters.
"""

from typing import Iterable

from ..core.types import AnalyticsMetrics, AnalyzerConfig, CoverageSummary, ExecutionRecord, STATUS_REVERT, STATUS_SUCCESS


def average_call_depth(records: Iterable[ExecutionRecord]) -> float:
    """Mean of each flow's max step depth; 0.0 when there are no flows."""
    depths = [record.max_depth for record in records]
    if not depths:
        return 0.0
    return sum(depths) / len(depths)


class AnalyticsAggregator:
    """Read-only aggregation over a record store and a HotspotAggregator."""

    def __init__(self, record_store, hotspots, config: AnalyzerConfig = None):
        """
        Args:
            record_store: Store exposing find_all/count/status_counts
            hotspots: HotspotAggregator used for top reverting functions
            config: AnalyzerConfig with query limits
        """
        self.record_store = record_store
        self.hotspots = hotspots
        self.config = config or AnalyzerConfig()

    def compute_analytics(self) -> AnalyticsMetrics:
        """Compute global metrics. An empty store yields all-zero metrics."""
        total = self.record_store.count()
        counts = self.record_store.status_counts()
        success = counts.get(STATUS_SUCCESS, 0)
        revert = counts.get(STATUS_REVERT, 0)

        records = self.record_store.find_all(self.config.analytics_record_limit)

        return AnalyticsMetrics(
            total_transactions=total,
            success_count=success,
            revert_count=revert,
            success_rate=success / total if total > 0 else 0.0,
            avg_call_depth=average_call_depth(records),
            top_revert_functions=self.hotspots.top_revert_functions(self.config.top_revert_limit),
        )

    def compute_coverage(self) -> CoverageSummary:
        """Count the distinct functions and contracts seen in recent flows."""
        records = self.record_store.find_all(self.config.coverage_record_limit)

        functions = set()
        contracts = set()
        for record in records:
            for step in record.steps:
                if step.function_name:
                    functions.add(step.function_name)
                if step.contract_address:
                    contracts.add(step.contract_address)

        return CoverageSummary(
            transactions_covered=len(records),
            unique_functions=len(functions),
            unique_contracts=len(contracts),
        )
