"""Domain discovery pipeline feeding the knowledge base ingestion queue."""

from .classifier import ClassificationResult, UrlClassifier
from .config import DiscoveryConfig, load_config
from .pipeline import DiscoveryPipeline, DiscoveryService, build_service

__all__ = [
    "ClassificationResult",
    "DiscoveryConfig",
    "DiscoveryPipeline",
    "DiscoveryService",
    "UrlClassifier",
    "build_service",
    "load_config",
]
