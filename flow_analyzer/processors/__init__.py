"""Processors for trace normalization, flow building and hierarchy reconstruction."""

from .normalizer import TraceNormalizer, normalize
from .failure_detector import detect_failure
from .flow_builder import (
    build_record,
    build_record_from_steps,
    parse_flow_request,
    parse_ingest_request,
    summarize_record,
)
from .hierarchy_builder import cluster_records_by_max_depth, reconstruct_step_tree
from .file_processor import IngestFileProcessor
from .parallel_ingestor import ParallelIngestor

__all__ = [
    "TraceNormalizer",
    "normalize",
    "detect_failure",
    "build_record",
    "build_record_from_steps",
    "parse_flow_request",
    "parse_ingest_request",
    "summarize_record",
    "cluster_records_by_max_depth",
    "reconstruct_step_tree",
    "IngestFileProcessor",
    "ParallelIngestor",
]
