"""
Type definitions for execution flow analysis.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

STATUS_SUCCESS = 'success'
STATUS_REVERT = 'revert'

NETWORKS = ('hardhat', 'testnet', 'mock')
INGEST_NETWORKS = ('hardhat', 'testnet')

ZERO_ADDRESS = '0x0000000000000000000000000000000000000000'

# Counter key: (function_name, contract_address or None)
StatsKey = Tuple[str, Optional[str]]


@dataclass(frozen=True)
class ExecutionStep:
    """One normalized call within a transaction execution."""
    depth: int
    contract_address: str
    status: str = STATUS_SUCCESS
    contract_name: Optional[str] = None
    function_name: Optional[str] = None
    function_selector: Optional[str] = None
    revert_reason: Optional[str] = None
    gas_used: Optional[int] = None

    @property
    def reverted(self) -> bool:
        return self.status == STATUS_REVERT

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization, omitting absent fields."""
        data = {
            'depth': self.depth,
            'contractAddress': self.contract_address,
            'contractName': self.contract_name,
            'functionName': self.function_name,
            'functionSelector': self.function_selector,
            'status': self.status,
            'revertReason': self.revert_reason,
            'gasUsed': self.gas_used,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExecutionStep':
        """Create an ExecutionStep from its dictionary form."""
        depth = data.get('depth') or 0
        status = STATUS_REVERT if data.get('status') == STATUS_REVERT else STATUS_SUCCESS
        return cls(
            depth=int(depth),
            contract_address=data.get('contractAddress') or ZERO_ADDRESS,
            status=status,
            contract_name=data.get('contractName'),
            function_name=data.get('functionName'),
            function_selector=data.get('functionSelector'),
            revert_reason=data.get('revertReason'),
            gas_used=data.get('gasUsed'),
        )


@dataclass(frozen=True)
class FailurePoint:
    """The first reverted step of a flow."""
    function_name: str
    depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {'functionName': self.function_name, 'depth': self.depth}


@dataclass(frozen=True)
class ExecutionRecord:
    """
    A complete normalized transaction flow.

    Records are immutable; saving a record with an existing tx_hash replaces
    the stored one.
    """
    tx_hash: str
    network: str
    status: str
    steps: Tuple[ExecutionStep, ...]
    timestamp: int
    project_id: Optional[str] = None
    entry_function: Optional[str] = None
    failed_at: Optional[FailurePoint] = None
    block_number: Optional[int] = None

    @property
    def max_depth(self) -> int:
        return max((step.depth for step in self.steps), default=0)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            'txHash': self.tx_hash,
            'network': self.network,
            'projectId': self.project_id,
            'status': self.status,
            'entryFunction': self.entry_function,
            'failedAt': self.failed_at.to_dict() if self.failed_at else None,
            'steps': [step.to_dict() for step in self.steps],
            'timestamp': self.timestamp,
            'blockNumber': self.block_number,
        }
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExecutionRecord':
        """Create an ExecutionRecord from its stored dictionary form."""
        failed_at = data.get('failedAt')
        return cls(
            tx_hash=data['txHash'],
            network=data['network'],
            status=data['status'],
            steps=tuple(ExecutionStep.from_dict(s) for s in data.get('steps', [])),
            timestamp=data['timestamp'],
            project_id=data.get('projectId'),
            entry_function=data.get('entryFunction'),
            failed_at=FailurePoint(failed_at['functionName'], failed_at['depth']) if failed_at else None,
            block_number=data.get('blockNumber'),
        )


@dataclass(frozen=True)
class RecordSummary:
    """List-display summary of a flow."""
    tx_hash: str
    project_id: str
    status: str
    entry_function: str
    step_count: int
    max_depth: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'txHash': self.tx_hash,
            'projectId': self.project_id,
            'status': self.status,
            'entryFunction': self.entry_function,
            'stepCount': self.step_count,
            'maxDepth': self.max_depth,
        }


@dataclass(frozen=True)
class CounterEntry:
    """Stored value of one function counter."""
    call_count: int = 0
    revert_count: int = 0
    last_updated: int = 0


@dataclass(frozen=True)
class FunctionStatistics:
    """Call/revert statistics for one (function, contract) pair."""
    function_name: str
    contract_address: Optional[str]
    call_count: int
    revert_count: int

    @property
    def revert_rate(self) -> float:
        if self.call_count <= 0:
            return 0.0
        return self.revert_count / self.call_count

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'functionName': self.function_name,
            'callCount': self.call_count,
            'revertCount': self.revert_count,
            'revertRate': self.revert_rate,
        }
        if self.contract_address is not None:
            data['contractAddress'] = self.contract_address
        return data


@dataclass(frozen=True)
class AnalyticsMetrics:
    """Global metrics derived from stored flows and function counters."""
    total_transactions: int
    success_count: int
    revert_count: int
    success_rate: float
    avg_call_depth: float
    top_revert_functions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalTransactions': self.total_transactions,
            'successCount': self.success_count,
            'revertCount': self.revert_count,
            'successRate': self.success_rate,
            'avgCallDepth': self.avg_call_depth,
            'topRevertFunctions': list(self.top_revert_functions),
        }


@dataclass(frozen=True)
class CoverageSummary:
    """How many flows, functions and contracts the analysis has seen."""
    transactions_covered: int
    unique_functions: int
    unique_contracts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'transactionsCovered': self.transactions_covered,
            'uniqueFunctions': self.unique_functions,
            'uniqueContracts': self.unique_contracts,
        }


@dataclass
class StepNode:
    """A step placed in a reconstructed call tree."""
    step: ExecutionStep
    children: List['StepNode'] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.step.to_dict()
        data['children'] = [child.to_dict() for child in self.children]
        return data


@dataclass
class RecordCluster:
    """
    A flow summary placed in a display grouping by max depth.

    The nesting is a visual heuristic; it does not mean one transaction
    called another.
    """
    summary: RecordSummary
    children: List['RecordCluster'] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary.to_dict()
        data['children'] = [child.to_dict() for child in self.children]
        return data


# ============================================
# Raw traces and ingest requests
# ============================================

@dataclass
class RawCallNode:
    """A raw nested call record as produced by a call tracer."""
    to: Optional[str] = None
    type: Optional[str] = None
    input: Optional[str] = None
    gas_used: Optional[Union[str, int]] = None
    error: Optional[str] = None
    revert_reason: Optional[str] = None
    calls: List['RawCallNode'] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawCallNode':
        """
        Build a node tree from tracer JSON.

        Unexpected field types are dropped rather than rejected, and children
        that are not objects are skipped. The tree is built with an explicit
        stack, so traces as deep as the call depth limit load fine.
        """
        root = cls._from_fields(data)
        stack = [(data, root)]
        while stack:
            raw, node = stack.pop()
            children = raw.get('calls')
            if not isinstance(children, list):
                continue
            for child in children:
                if isinstance(child, dict):
                    child_node = cls._from_fields(child)
                    node.calls.append(child_node)
                    stack.append((child, child_node))
        return root

    @classmethod
    def _from_fields(cls, data: Dict[str, Any]) -> 'RawCallNode':
        return cls(
            to=_str_or_none(data.get('to')),
            type=_str_or_none(data.get('type')),
            input=_str_or_none(data.get('input')),
            gas_used=_gas_or_none(data.get('gasUsed')),
            error=_str_or_none(data.get('error')),
            revert_reason=_str_or_none(data.get('revertReason')),
        )


@dataclass(frozen=True)
class TraceIngest:
    """Ingest request carrying a full call trace."""
    tx_hash: str
    network: str
    trace: RawCallNode
    timestamp: Optional[int] = None
    project_id: Optional[str] = None
    block_number: Optional[int] = None


@dataclass(frozen=True)
class FieldsIngest:
    """Ingest request carrying only the plugin's request fields, no trace."""
    tx_hash: str
    network: str
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    timestamp: Optional[int] = None
    project_id: Optional[str] = None
    block_number: Optional[int] = None


IngestRequest = Union[TraceIngest, FieldsIngest]


class AnalyzerConfig:
    """Configuration for flow analysis."""

    def __init__(
        self,
        max_steps_per_record: int = 10000,
        max_query_limit: int = 100,
        analytics_record_limit: int = 100,
        coverage_record_limit: int = 1000,
        top_revert_limit: int = 5,
        default_project_id: str = '1'
    ):
        """
        Initialize flow analysis configuration.

        Args:
            max_steps_per_record: Ingestion rejects flows with more steps than this.
            max_query_limit: Upper bound for list queries (executions).
            analytics_record_limit: Number of most recent flows used for avg call depth.
            coverage_record_limit: Number of most recent flows scanned for coverage.
            top_revert_limit: How many hotspots are considered for topRevertFunctions.
            default_project_id: Project id assigned when a request carries none.
        """
        self.max_steps_per_record = max_steps_per_record
        self.max_query_limit = max_query_limit
        self.analytics_record_limit = analytics_record_limit
        self.coverage_record_limit = coverage_record_limit
        self.top_revert_limit = top_revert_limit
        self.default_project_id = default_project_id


def _str_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _gas_or_none(value: Any) -> Optional[Union[str, int]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return value
    return None
