"""
Ingestion: date enrichment and streaming of plain records into a cube.
"""

from hypercube.ingest.transforms import add_date_facts, DAYS_OF_WEEK
from hypercube.ingest.stream import CubeStream, StreamConfig, read_jsonl

__all__ = ["add_date_facts", "DAYS_OF_WEEK", "CubeStream", "StreamConfig", "read_jsonl"]
