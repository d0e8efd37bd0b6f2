"""Configuration and caching helpers used around the core algorithms."""

from .config_loader import ConfigLoader, get_clustering_options
from .cache import FlowMapCache

__all__ = [
    "ConfigLoader",
    "get_clustering_options",
    "FlowMapCache",
]
