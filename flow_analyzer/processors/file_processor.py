"""
JSON ingest file processing using streaming parser.
"""

import ijson
from typing import BinaryIO, Dict, Iterator, List, Union


class IngestFileProcessor:
    """Reads ingest request payloads from JSON files using a streaming parser."""

    @staticmethod
    def iter_requests(source: Union[str, BinaryIO], prefix: str = 'item') -> Iterator[Dict]:
        """
        Stream ingest payloads one at a time.

        Args:
            source: Path to a JSON file, or a binary file object
            prefix: ijson prefix of the payload objects; 'item' for a top-level array

        Yields:
            Decoded payload dictionaries (non-object items are skipped)
        """
        if isinstance(source, str):
            with open(source, 'rb') as f:
                yield from IngestFileProcessor.iter_requests(f, prefix)
            return

        for item in ijson.items(source, prefix, use_float=True):
            if isinstance(item, dict):
                yield item

    @staticmethod
    def process_file(file_path: str, prefix: str = 'item') -> List[Dict]:
        """
        Read every ingest payload of a JSON file.

        Args:
            file_path: Path to the JSON file

        Returns:
            List of payload dictionaries
        """
        print(f"Processing {file_path}...")

        requests = []
        for payload in IngestFileProcessor.iter_requests(file_path, prefix):
            requests.append(payload)
            if len(requests) % 100 == 0:
                print(f"  Read {len(requests)} requests...")

        print(f"Completed reading file: {len(requests)} requests found.")
        return requests
