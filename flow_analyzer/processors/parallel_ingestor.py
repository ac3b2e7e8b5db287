"""
Parallel ingestion of flow payloads using a thread pool.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..core.exceptions import InvalidIngestRequest

logger = logging.getLogger(__name__)


class ParallelIngestor:
    """Ingest many payloads concurrently through a FlowAnalyzer."""

    def __init__(self, analyzer, num_workers: Optional[int] = None):
        """
        Initialize parallel ingestor.

        Args:
            analyzer: FlowAnalyzer receiving the payloads
            num_workers: Number of worker threads (default: CPU count)
        """
        self.analyzer = analyzer
        self.num_workers = num_workers or os.cpu_count() or 4

    def ingest_all(
        self,
        payloads: Iterable[Dict],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> Tuple[int, List[Tuple[int, str]]]:
        """
        Ingest payloads, in parallel when more than one worker is configured.

        Invalid payloads are collected and reported; any other failure,
        including AggregationUnavailable, propagates.

        Args:
            payloads: Decoded ingest payloads
            progress_callback: Optional callback(completed, total) for progress updates

        Returns:
            Tuple of (ingested_count, [(payload_index, error_message), ...])
        """
        payloads = list(payloads)
        total = len(payloads)

        if total <= 1 or self.num_workers <= 1:
            return self._ingest_sequential(payloads, progress_callback)

        ingested = 0
        rejected = []
        completed = 0
        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            futures = {
                executor.submit(self.analyzer.ingest_payload, payload): index
                for index, payload in enumerate(payloads)
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    future.result()
                    ingested += 1
                except InvalidIngestRequest as e:
                    rejected.append((index, str(e)))
                completed += 1
                if progress_callback:
                    progress_callback(completed, total)

        rejected.sort()
        logger.info("Ingested %d of %d payloads with %d workers", ingested, total, self.num_workers)
        return ingested, rejected

    def _ingest_sequential(self, payloads, progress_callback):
        ingested = 0
        rejected = []
        total = len(payloads)
        for index, payload in enumerate(payloads):
            try:
                self.analyzer.ingest_payload(payload)
                ingested += 1
            except InvalidIngestRequest as e:
                rejected.append((index, str(e)))
            if progress_callback:
                progress_callback(index + 1, total)
        return ingested, rejected
