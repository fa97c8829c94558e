"""Hierarchical context compaction: raw chunks -> micro -> section summaries."""

from src.listener.compaction.scheduler import CompactionOutcome, CompactionScheduler
from src.listener.compaction.topics import TOPIC_KEYWORDS, extract_topics

__all__ = [
    "CompactionOutcome",
    "CompactionScheduler",
    "TOPIC_KEYWORDS",
    "extract_topics",
]
