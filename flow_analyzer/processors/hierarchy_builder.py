"""
Hierarchy builders for execution steps and flow lists.
"""

from typing import Dict, Iterable, List, Union

from ..core.types import ExecutionRecord, ExecutionStep, RecordCluster, RecordSummary, StepNode
from .flow_builder import summarize_record


def reconstruct_step_tree(steps: Iterable[ExecutionStep]) -> List[StepNode]:
    """
    Rebuild the call tree encoded by the order and depth of a flow's steps.

    A depth-0 step starts a new root. A deeper step becomes a child of the
    last node seen one level above it, then takes over its own level.

    The result is exact for well-formed depth-first traversals, where depth
    grows by at most one per step. For any other ordering it is a best-effort
    approximation: a step with no node one level above it is promoted to a
    root instead of being rejected.

    Args:
        steps: ExecutionSteps in traversal order

    Returns:
        List of root StepNodes
    """
    roots = []
    last_at_depth: Dict[int, StepNode] = {}

    for step in steps:
        node = StepNode(step)
        parent = last_at_depth.get(step.depth - 1) if step.depth > 0 else None
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)
        last_at_depth[step.depth] = node

    return roots


def cluster_records_by_max_depth(
    records: Iterable[Union[ExecutionRecord, RecordSummary]]
) -> List[RecordCluster]:
    """
    Group flows for list display by their max call depth.

    Each flow is nested under the last flow seen whose max depth is one less
    than its own. This is a visual grouping of unrelated transactions by a
    scalar attribute; it does not describe any call between them, and must
    not be read as one.

    Args:
        records: ExecutionRecords or RecordSummaries, in display order

    Returns:
        List of top-level RecordClusters
    """
    top_level = []
    last_at_depth: Dict[int, RecordCluster] = {}

    for record in records:
        summary = record if isinstance(record, RecordSummary) else summarize_record(record)
        cluster = RecordCluster(summary)
        parent = last_at_depth.get(summary.max_depth - 1) if summary.max_depth > 0 else None
        if parent is not None:
            parent.children.append(cluster)
        else:
            top_level.append(cluster)
        last_at_depth[summary.max_depth] = cluster

    return top_level
