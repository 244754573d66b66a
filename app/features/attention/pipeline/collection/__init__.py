"""
Attention collection package.

Exposes the collector registry and the runner that fans them out.
"""

from .service import COLLECTOR_REGISTRY, CollectionResult, CollectorRunner

__all__ = ["COLLECTOR_REGISTRY", "CollectionResult", "CollectorRunner"]
