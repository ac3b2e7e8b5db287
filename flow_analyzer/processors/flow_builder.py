"""
Flow builder: turns ingest requests into ExecutionRecords.
"""

import time
from typing import Any, Dict, Optional, Sequence

from ..core.exceptions import InvalidIngestRequest
from ..core.types import (
    ExecutionRecord,
    ExecutionStep,
    FieldsIngest,
    INGEST_NETWORKS,
    IngestRequest,
    NETWORKS,
    RawCallNode,
    RecordSummary,
    STATUS_REVERT,
    STATUS_SUCCESS,
    TraceIngest,
)
from .failure_detector import detect_failure
from .normalizer import normalize

STEP_STRING_FIELDS = (
    'contractAddress',
    'contractName',
    'functionName',
    'functionSelector',
    'revertReason',
    'status',
)


def now_ms() -> int:
    return int(time.time() * 1000)


def build_record(request: IngestRequest, default_project_id: str = '1') -> ExecutionRecord:
    """
    Build a complete ExecutionRecord from an ingest request.

    A TraceIngest is normalized from its call trace. A FieldsIngest yields a
    single successful root step built from the plugin's params, or no steps
    at all when it has none.

    Args:
        request: TraceIngest or FieldsIngest
        default_project_id: Project id used when the request has none

    Returns:
        ExecutionRecord with derived status, entry function and failure point
    """
    if isinstance(request, TraceIngest):
        steps = normalize(request.trace)
    elif isinstance(request, FieldsIngest):
        steps = _steps_from_fields(request)
    else:
        raise TypeError(f"Unsupported ingest request: {type(request).__name__}")

    return build_record_from_steps(
        request.tx_hash,
        steps,
        network=request.network,
        project_id=request.project_id or default_project_id,
        timestamp=request.timestamp,
        block_number=request.block_number,
    )


def build_record_from_steps(
    tx_hash: str,
    steps: Sequence[ExecutionStep],
    network: str = 'mock',
    project_id: Optional[str] = '1',
    timestamp: Optional[int] = None,
    block_number: Optional[int] = None,
    entry_function: Optional[str] = None,
) -> ExecutionRecord:
    """Assemble an ExecutionRecord, deriving status and failed_at from the steps."""
    failed_at = detect_failure(steps)
    if entry_function is None and steps:
        entry_function = steps[0].function_name

    return ExecutionRecord(
        tx_hash=tx_hash,
        network=network,
        status=STATUS_REVERT if failed_at else STATUS_SUCCESS,
        steps=tuple(steps),
        timestamp=now_ms() if timestamp is None else timestamp,
        project_id=project_id,
        entry_function=entry_function,
        failed_at=failed_at,
        block_number=block_number,
    )


def _steps_from_fields(request: FieldsIngest):
    if request.params is None:
        return []
    return [ExecutionStep(
        depth=0,
        contract_address=request.params.get('to') or 'unknown',
        function_name=request.method or 'unknown',
        status=STATUS_SUCCESS,
    )]


def summarize_record(record: ExecutionRecord) -> RecordSummary:
    """Summarize a flow for list display."""
    return RecordSummary(
        tx_hash=record.tx_hash,
        project_id=record.project_id or '1',
        status=record.status,
        entry_function=record.entry_function or 'unknown',
        step_count=len(record.steps),
        max_depth=record.max_depth,
    )


# ============================================
# Request parsing
# ============================================

def parse_ingest_request(body: Any) -> IngestRequest:
    """
    Validate a plugin/tracer payload and resolve it to a request variant.

    The variant is chosen once here: a payload with a trace object becomes a
    TraceIngest, anything else a FieldsIngest.

    Args:
        body: Decoded JSON payload

    Returns:
        TraceIngest or FieldsIngest

    Raises:
        InvalidIngestRequest: If txHash is missing or the network is unsupported
    """
    if not isinstance(body, dict):
        raise InvalidIngestRequest('Request body must be an object')

    tx_hash = body.get('txHash')
    if not tx_hash or not isinstance(tx_hash, str):
        raise InvalidIngestRequest('txHash is required and must be a string')

    network = body.get('network') or 'hardhat'
    if network not in INGEST_NETWORKS:
        raise InvalidIngestRequest('network must be "hardhat" or "testnet"')

    timestamp = _int_or_none(body.get('timestamp'))
    if timestamp is None:
        timestamp = now_ms()
    project_id = body.get('projectId') if isinstance(body.get('projectId'), str) else None
    block_number = _int_or_none(body.get('blockNumber'))

    trace = body.get('trace')
    if isinstance(trace, dict):
        return TraceIngest(
            tx_hash=tx_hash,
            network=network,
            trace=RawCallNode.from_dict(trace),
            timestamp=timestamp,
            project_id=project_id,
            block_number=block_number,
        )

    params = body.get('params')
    return FieldsIngest(
        tx_hash=tx_hash,
        network=network,
        method=body.get('method') if isinstance(body.get('method'), str) else None,
        params=params if isinstance(params, dict) else None,
        timestamp=timestamp,
        project_id=project_id,
        block_number=block_number,
    )


def parse_flow_request(body: Any, default_project_id: str = '1') -> ExecutionRecord:
    """
    Build an ExecutionRecord from a pre-built flow payload.

    Status and failedAt sent by the caller are ignored and re-derived from the
    steps so that stored flows always agree with their steps.

    Raises:
        InvalidIngestRequest: If txHash or the steps array is missing or malformed
    """
    if not isinstance(body, dict):
        raise InvalidIngestRequest('Request body must be an object')

    tx_hash = body.get('txHash')
    if not tx_hash or not isinstance(tx_hash, str):
        raise InvalidIngestRequest('txHash is required')

    raw_steps = body.get('steps')
    if not isinstance(raw_steps, list):
        raise InvalidIngestRequest('steps array is required')

    steps = [_parse_step(raw_step, index) for index, raw_step in enumerate(raw_steps)]

    network = body.get('network') or 'hardhat'
    if network not in NETWORKS:
        raise InvalidIngestRequest(f'network must be one of: {list(NETWORKS)}')

    project_id = body.get('projectId')
    if project_id is not None and not isinstance(project_id, str):
        raise InvalidIngestRequest('projectId must be a string')

    entry_function = body.get('entryFunction')
    if not isinstance(entry_function, str):
        entry_function = steps[0].function_name if steps else None

    return build_record_from_steps(
        tx_hash,
        steps,
        network=network,
        project_id=project_id or default_project_id,
        timestamp=_int_or_none(body.get('timestamp')),
        block_number=_int_or_none(body.get('blockNumber')),
        entry_function=entry_function or 'unknown',
    )


def _parse_step(raw_step: Any, index: int) -> ExecutionStep:
    """Validate one step of a pre-built flow and build it."""
    if not isinstance(raw_step, dict):
        raise InvalidIngestRequest(f'steps[{index}] must be an object')

    depth = raw_step.get('depth')
    if depth is not None and (isinstance(depth, bool) or not isinstance(depth, int)):
        raise InvalidIngestRequest(f'steps[{index}].depth must be an integer')
    if depth is not None and depth < 0:
        raise InvalidIngestRequest(f'steps[{index}].depth must not be negative')

    for name in STEP_STRING_FIELDS:
        value = raw_step.get(name)
        if value is not None and not isinstance(value, str):
            raise InvalidIngestRequest(f'steps[{index}].{name} must be a string')

    gas_used = raw_step.get('gasUsed')
    if gas_used is not None and (isinstance(gas_used, bool) or not isinstance(gas_used, int)):
        raise InvalidIngestRequest(f'steps[{index}].gasUsed must be an integer')

    return ExecutionStep.from_dict(raw_step)


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)
