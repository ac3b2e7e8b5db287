"""
Trace normalizer: raw nested call traces to flat execution steps.
"""

from typing import Any, Dict, List, Optional, Union

from ..core.types import (
    ExecutionStep,
    RawCallNode,
    STATUS_REVERT,
    STATUS_SUCCESS,
    ZERO_ADDRESS,
)

CREATE_CALL_TYPES = {'CREATE', 'CREATE2'}

# '0x' + 8 hex digits
SELECTOR_LENGTH = 10


class TraceNormalizer:
    """Flattens a raw call tree into depth-ordered ExecutionSteps."""

    def normalize(self, raw_trace: Union[RawCallNode, Dict[str, Any]]) -> List[ExecutionStep]:
        """
        Walk the call tree depth-first, parent before children, and emit one
        step per call.

        The root has depth 0 and every child sits one level below its parent,
        so consecutive steps never grow in depth by more than one. Malformed
        input degrades to defaults instead of raising.

        Args:
            raw_trace: Root call node, either parsed or as tracer JSON

        Returns:
            List of ExecutionSteps in execution order
        """
        if isinstance(raw_trace, dict):
            raw_trace = RawCallNode.from_dict(raw_trace)
        if not isinstance(raw_trace, RawCallNode):
            return []

        steps = []
        stack = [(raw_trace, 0)]
        while stack:
            node, depth = stack.pop()
            steps.append(self.create_step(node, depth))
            # Reversed so the first child is popped first
            for child in reversed(node.calls):
                stack.append((child, depth + 1))
        return steps

    def create_step(self, node: RawCallNode, depth: int) -> ExecutionStep:
        """Build a single ExecutionStep from one call node."""
        selector = self.extract_function_selector(node.input)
        if node.type in CREATE_CALL_TYPES:
            function_name = 'constructor'
        else:
            function_name = selector or 'fallback'

        return ExecutionStep(
            depth=depth,
            contract_address=node.to or ZERO_ADDRESS,
            function_name=function_name,
            function_selector=selector,
            status=STATUS_REVERT if node.error else STATUS_SUCCESS,
            revert_reason=node.revert_reason or node.error or None,
            gas_used=self.parse_gas(node.gas_used),
        )

    @staticmethod
    def extract_function_selector(payload: Optional[str]) -> Optional[str]:
        """Return the leading 4-byte selector of the call data, if present."""
        if not isinstance(payload, str) or len(payload) < SELECTOR_LENGTH:
            return None
        return payload[:SELECTOR_LENGTH]

    @staticmethod
    def parse_gas(value: Optional[Union[str, int]]) -> Optional[int]:
        """
        Parse a hex gas amount.

        Absent, empty or unparsable values yield None; "0x0" yields 0.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        value = value.strip()
        if not value:
            return None
        try:
            return int(value, 16)
        except ValueError:
            return None


_default_normalizer = TraceNormalizer()


def normalize(raw_trace: Union[RawCallNode, Dict[str, Any]]) -> List[ExecutionStep]:
    """Normalize a raw call trace with the default normalizer."""
    return _default_normalizer.normalize(raw_trace)
