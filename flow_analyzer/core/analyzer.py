"""
Main flow analyzer orchestrator.
"""

import logging
from typing import Any, Iterator, List, Optional

from ..analysis import AnalyticsAggregator, HotspotAggregator
from ..processors import (
    build_record,
    cluster_records_by_max_depth,
    detect_failure,
    normalize,
    parse_flow_request,
    parse_ingest_request,
    reconstruct_step_tree,
    summarize_record,
)
from ..storage import InMemoryCounterStore, InMemoryRecordStore
from .exceptions import InvalidIngestRequest
from .types import (
    AnalyticsMetrics,
    AnalyzerConfig,
    CoverageSummary,
    ExecutionRecord,
    ExecutionStep,
    FailurePoint,
    FunctionStatistics,
    IngestRequest,
    RecordCluster,
    RecordSummary,
    StepNode,
)

logger = logging.getLogger(__name__)


class FlowAnalyzer:
    """Main orchestrator for flow ingestion and analysis."""

    def __init__(
        self,
        config: Optional[AnalyzerConfig] = None,
        record_store=None,
        counter_store=None
    ):
        """
        Initialize the FlowAnalyzer.

        Args:
            config: AnalyzerConfig; defaults are used when omitted
            record_store: Flow storage (default: InMemoryRecordStore)
            counter_store: Function counter storage (default: InMemoryCounterStore)
        """
        self.config = config or AnalyzerConfig()
        self.record_store = record_store if record_store is not None else InMemoryRecordStore()
        self.hotspots = HotspotAggregator(
            counter_store if counter_store is not None else InMemoryCounterStore()
        )
        self.analytics = AnalyticsAggregator(self.record_store, self.hotspots, self.config)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, request: IngestRequest) -> ExecutionRecord:
        """
        Normalize, store and count one ingest request.

        Raises:
            InvalidIngestRequest: If the flow exceeds max_steps_per_record
            AggregationUnavailable: If function counters cannot be updated
        """
        return self.store_record(build_record(request, self.config.default_project_id))

    def ingest_payload(self, body: Any) -> ExecutionRecord:
        """Validate a decoded JSON payload and ingest it."""
        return self.ingest(parse_ingest_request(body))

    def ingest_flow_payload(self, body: Any) -> ExecutionRecord:
        """Validate a pre-built flow payload and ingest it."""
        return self.store_record(parse_flow_request(body, self.config.default_project_id))

    def store_record(self, record: ExecutionRecord) -> ExecutionRecord:
        """Save a flow and count its steps."""
        if len(record.steps) > self.config.max_steps_per_record:
            raise InvalidIngestRequest(
                f"Flow has {len(record.steps)} steps; the limit is {self.config.max_steps_per_record}"
            )

        self.hotspots.record_steps(record.steps, persist=lambda: self.record_store.save(record))

        logger.info("Stored transaction %s with %d steps", record.tx_hash, len(record.steps))
        return record

    # ------------------------------------------------------------------
    # Pure transforms
    # ------------------------------------------------------------------

    @staticmethod
    def normalize(raw_trace) -> List[ExecutionStep]:
        return normalize(raw_trace)

    @staticmethod
    def detect_failure(steps) -> Optional[FailurePoint]:
        return detect_failure(steps)

    @staticmethod
    def reconstruct_step_tree(steps) -> List[StepNode]:
        return reconstruct_step_tree(steps)

    @staticmethod
    def cluster_records_by_max_depth(records) -> List[RecordCluster]:
        return cluster_records_by_max_depth(records)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _clamp(self, limit: int) -> int:
        return max(0, min(limit, self.config.max_query_limit))

    def list_executions(self, limit: int = 50) -> List[RecordSummary]:
        return [summarize_record(r) for r in self.record_store.find_all(self._clamp(limit))]

    def list_execution_clusters(self, limit: int = 50) -> List[RecordCluster]:
        return cluster_records_by_max_depth(self.list_executions(limit))

    def get_execution(self, tx_hash: str) -> Optional[ExecutionRecord]:
        return self.record_store.find_by_hash(tx_hash)

    def get_step_tree(self, tx_hash: str) -> Optional[List[StepNode]]:
        record = self.record_store.find_by_hash(tx_hash)
        if record is None:
            return None
        # Exact only for well-formed depth-first step order; orphans become roots.
        return reconstruct_step_tree(record.steps)

    def record_call(self, function_name: str, contract_address: Optional[str], reverted: bool) -> None:
        self.hotspots.record_call(function_name, contract_address, reverted)

    def get_hotspots(self, limit: int = 10) -> List[FunctionStatistics]:
        return self.hotspots.get_hotspots(limit)

    def clear_stats(self) -> None:
        self.hotspots.clear()

    def recompute_all(self, records=None) -> int:
        """
        Rebuild function counters from the given flows, or from every stored
        flow when none are given.
        """
        if records is None:
            records = self._stored_records()
        return self.hotspots.recompute_all(records)

    def _stored_records(self) -> Iterator[ExecutionRecord]:
        # Lazy, so the store is read only once the rebuild holds the counters
        yield from self.record_store.find_all(self.record_store.count())

    def compute_analytics(self) -> AnalyticsMetrics:
        return self.analytics.compute_analytics()

    def compute_coverage(self) -> CoverageSummary:
        return self.analytics.compute_coverage()

