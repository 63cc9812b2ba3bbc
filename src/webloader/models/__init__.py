"""Data models for resources and load results."""

from .resource import ResourceSpec, ResourceType
from .results import FetchedResource, FetchResult

__all__ = [
    "ResourceSpec",
    "ResourceType",
    "FetchedResource",
    "FetchResult",
]
