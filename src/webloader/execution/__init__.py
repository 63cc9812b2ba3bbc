"""Execution - fetchers and the step-by-step resource loader."""

from .fetcher import HttpFetcher, ResourceFetcher
from .loader import ResourceLoader

__all__ = [
    "HttpFetcher",
    "ResourceFetcher",
    "ResourceLoader",
]
