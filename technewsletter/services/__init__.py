"""Service layer: collection, curation, storage and orchestration"""

from .collector import FeedCollector
from .curation import CurationEngine, ParseResult, parse_digest
from .digest_store import DigestStore
from .pipeline import PipelineOrchestrator, PipelineResult, PipelineState

__all__ = [
    "CurationEngine",
    "DigestStore",
    "FeedCollector",
    "ParseResult",
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineState",
    "parse_digest",
]
