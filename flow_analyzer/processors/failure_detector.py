"""
Failure point detection for execution steps.
"""

from typing import Iterable, Optional

from ..core.types import ExecutionStep, FailurePoint


def detect_failure(steps: Iterable[ExecutionStep]) -> Optional[FailurePoint]:
    """
    Find the first reverted step in execution order.

    Steps after an early revert may never have run, so the earliest revert is
    the proximate failure, not the deepest or the last one.

    Args:
        steps: ExecutionSteps in traversal order

    Returns:
        FailurePoint of the first reverted step, or None if nothing reverted
    """
    for step in steps:
        if step.reverted:
            return FailurePoint(
                function_name=step.function_name or 'unknown',
                depth=step.depth,
            )
    return None
