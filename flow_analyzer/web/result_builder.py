"""
Result builder for web interface output.
"""

import time
from typing import Any, Dict, Optional

from ..core.types import AnalyticsMetrics, CoverageSummary


def create_meta(source: str = 'mock') -> Dict[str, Any]:
    """
    Build the metadata block included in every API response.

    Args:
        source: 'hardhat' for live data, 'mock' otherwise

    Returns:
        Dictionary with analysisStatus, source and timestamp
    """
    return {
        'analysisStatus': 'mock' if source == 'mock' else 'complete',
        'source': source,
        'timestamp': int(time.time() * 1000),
    }


def prepare_response(
    data: Any,
    source: str = 'mock',
    count: Optional[int] = None,
    message: Optional[str] = None
) -> Dict[str, Any]:
    """Wrap response data in the standard {data, meta, count?, message?} envelope."""
    response = {
        'data': data,
        'meta': create_meta(source),
    }
    if count is not None:
        response['count'] = count
    if message:
        response['message'] = message
    return response


def prepare_error(error: str, message: str) -> Dict[str, Any]:
    """Build the standard error body."""
    return {
        'error': error,
        'message': message,
        'meta': create_meta(),
    }


def prepare_analytics(metrics: AnalyticsMetrics, coverage: CoverageSummary) -> Dict[str, Any]:
    """Merge global metrics and coverage into one analytics payload."""
    results = metrics.to_dict()
    results.update(coverage.to_dict())
    return results
