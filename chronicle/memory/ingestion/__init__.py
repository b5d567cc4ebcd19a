"""Memory ingestion: extraction, deduplication, storage and monthly consolidation."""

from chronicle.memory.ingestion.deduplicator import EpisodeDeduplicator
from chronicle.memory.ingestion.errors import IngestionError, SummarizationError
from chronicle.memory.ingestion.extractor import MemoryExtractor
from chronicle.memory.ingestion.ingestor import MemoryIngestor
from chronicle.memory.ingestion.summarizer import MemorySummarizer

__all__ = [
    "EpisodeDeduplicator",
    "IngestionError",
    "MemoryExtractor",
    "MemoryIngestor",
    "MemorySummarizer",
    "SummarizationError",
]
