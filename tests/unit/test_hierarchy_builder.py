"""
Unit tests for flow_analyzer.processors.hierarchy_builder module.
"""
from flow_analyzer.core.types import RecordSummary
from flow_analyzer.processors.hierarchy_builder import (
    cluster_records_by_max_depth,
    reconstruct_step_tree,
)


def names(nodes):
    return [n.step.function_name for n in nodes]


def summary(tx_hash, max_depth):
    return RecordSummary(
        tx_hash=tx_hash,
        project_id='1',
        status='success',
        entry_function=tx_hash,
        step_count=max_depth + 1,
        max_depth=max_depth,
    )


class TestReconstructStepTree:
    """Tests for rebuilding call trees from depth-ordered steps."""

    def test_example_sequence(self, example_steps):
        roots = reconstruct_step_tree(example_steps)

        assert len(roots) == 1
        root = roots[0]
        assert names(root.children) == ['allocateFunds', 'transfer']
        assert names(root.children[0].children) == ['deployCapital']
        assert root.children[1].children == []

    def test_empty_steps(self):
        assert reconstruct_step_tree([]) == []

    def test_multiple_roots(self, make_step):
        steps = [make_step(0, 'a'), make_step(1, 'b'), make_step(0, 'c')]
        roots = reconstruct_step_tree(steps)

        assert names(roots) == ['a', 'c']
        assert names(roots[0].children) == ['b']

    def test_return_jumps_several_levels(self, make_step):
        steps = [
            make_step(0, 'root'),
            make_step(1, 'a'),
            make_step(2, 'b'),
            make_step(3, 'c'),
            make_step(1, 'd'),
        ]
        roots = reconstruct_step_tree(steps)

        assert names(roots[0].children) == ['a', 'd']

    def test_orphan_is_promoted_to_root(self, make_step):
        steps = [make_step(2, 'orphan'), make_step(3, 'child')]
        roots = reconstruct_step_tree(steps)

        assert names(roots) == ['orphan']
        assert names(roots[0].children) == ['child']

    def test_later_sibling_overwrites_level(self, make_step):
        steps = [
            make_step(0, 'root'),
            make_step(1, 'first'),
            make_step(1, 'second'),
            make_step(2, 'grandchild'),
        ]
        roots = reconstruct_step_tree(steps)

        first, second = roots[0].children
        assert first.children == []
        assert names(second.children) == ['grandchild']

    def test_to_dict_nests_children(self, example_steps):
        tree = reconstruct_step_tree(example_steps)[0].to_dict()

        assert tree['functionName'] == 'deposit'
        assert tree['children'][0]['children'][0]['status'] == 'revert'


class TestClusterRecordsByMaxDepth:
    """Tests for grouping flow summaries by max depth."""

    def test_nests_under_last_seen_shallower_record(self):
        clusters = cluster_records_by_max_depth([
            summary('a', 0),
            summary('b', 1),
            summary('c', 2),
            summary('d', 1),
        ])

        assert [c.summary.tx_hash for c in clusters] == ['a']
        assert [c.summary.tx_hash for c in clusters[0].children] == ['b', 'd']
        assert [c.summary.tx_hash for c in clusters[0].children[0].children] == ['c']

    def test_record_without_shallower_neighbour_is_top_level(self):
        clusters = cluster_records_by_max_depth([summary('a', 4), summary('b', 4), summary('c', 3)])

        assert [c.summary.tx_hash for c in clusters] == ['a', 'b', 'c']
        assert all(c.children == [] for c in clusters)

    def test_accepts_execution_records(self, sample_records):
        clusters = cluster_records_by_max_depth(sample_records)

        # max depths 4, 4, 3, 1 -> nothing sits one level above another
        assert [c.summary.max_depth for c in clusters] == [4, 4, 3, 1]

    def test_returns_separate_node_type_from_step_tree(self, sample_records):
        clusters = cluster_records_by_max_depth(sample_records)

        assert clusters[0].to_dict()['txHash'] == '0xdeposit'
        assert 'children' in clusters[0].to_dict()
        assert not hasattr(clusters[0], 'step')

    def test_empty_input(self):
        assert cluster_records_by_max_depth([]) == []
