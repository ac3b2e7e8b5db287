"""
Unit tests for flow_analyzer.analysis.analytics module.
"""
import pytest

from flow_analyzer.analysis import AnalyticsAggregator, HotspotAggregator, average_call_depth
from flow_analyzer.core.types import AnalyzerConfig
from flow_analyzer.processors import build_record_from_steps
from flow_analyzer.storage import InMemoryCounterStore, InMemoryRecordStore


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def hotspots():
    return HotspotAggregator(InMemoryCounterStore())


@pytest.fixture
def aggregator(record_store, hotspots):
    return AnalyticsAggregator(record_store, hotspots)


def load(record_store, hotspots, records):
    for record in records:
        record_store.save(record)
        hotspots.record_steps(record.steps)


class TestAverageCallDepth:
    """Tests for the per-flow max depth mean."""

    def test_example_depths(self, sample_records):
        assert [r.max_depth for r in sample_records] == [4, 4, 3, 1]
        assert average_call_depth(sample_records) == 3.0

    def test_no_records(self):
        assert average_call_depth([]) == 0.0

    def test_flow_without_steps_counts_as_zero(self, sample_records):
        empty = build_record_from_steps('0xempty', [])
        assert average_call_depth(sample_records + [empty]) == 12 / 5


class TestComputeAnalytics:
    """Tests for global metrics."""

    def test_empty_store_yields_zero_metrics(self, aggregator):
        metrics = aggregator.compute_analytics()

        assert metrics.total_transactions == 0
        assert metrics.success_count == 0
        assert metrics.revert_count == 0
        assert metrics.success_rate == 0.0
        assert metrics.avg_call_depth == 0.0
        assert metrics.top_revert_functions == []

    def test_metrics_over_sample_records(self, aggregator, record_store, hotspots, sample_records):
        load(record_store, hotspots, sample_records)

        metrics = aggregator.compute_analytics()

        assert metrics.total_transactions == 4
        assert metrics.success_count == 2
        assert metrics.revert_count == 2
        assert metrics.success_rate == 0.5
        assert metrics.avg_call_depth == 3.0
        assert set(metrics.top_revert_functions) == {'accrueInterest', 'getPrice'}

    def test_does_not_mutate_state(self, aggregator, record_store, hotspots, sample_records):
        load(record_store, hotspots, sample_records)
        before = hotspots.get_all_stats()

        aggregator.compute_analytics()
        aggregator.compute_coverage()

        assert hotspots.get_all_stats() == before
        assert record_store.count() == 4

    def test_avg_depth_uses_most_recent_records_only(self, record_store, hotspots, sample_records):
        load(record_store, hotspots, sample_records)
        aggregator = AnalyticsAggregator(record_store, hotspots, AnalyzerConfig(analytics_record_limit=2))

        # Most recent two flows have max depths 1 and 3
        assert aggregator.compute_analytics().avg_call_depth == 2.0

    def test_to_dict_uses_wire_names(self, aggregator):
        data = aggregator.compute_analytics().to_dict()

        assert set(data) == {
            'totalTransactions', 'successCount', 'revertCount',
            'successRate', 'avgCallDepth', 'topRevertFunctions',
        }


class TestComputeCoverage:
    """Tests for function/contract coverage."""

    def test_counts_unique_functions_and_contracts(self, aggregator, record_store, hotspots, sample_records):
        load(record_store, hotspots, sample_records)

        coverage = aggregator.compute_coverage()

        assert coverage.transactions_covered == 4
        assert coverage.unique_functions == 14
        assert coverage.unique_contracts == 6

    def test_empty_store(self, aggregator):
        coverage = aggregator.compute_coverage()
        assert (coverage.transactions_covered, coverage.unique_functions, coverage.unique_contracts) == (0, 0, 0)
