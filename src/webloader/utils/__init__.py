"""Utility functions and exceptions."""

from .exceptions import (
    CyclicDependencyError,
    EmptyPlanError,
    FetchError,
    InvalidInputError,
    LoaderError,
    LoadHandlerError,
    ManifestError,
    NodeNotFoundError,
    ResourceLoadError,
)

__all__ = [
    "LoaderError",
    "InvalidInputError",
    "ManifestError",
    "NodeNotFoundError",
    "CyclicDependencyError",
    "EmptyPlanError",
    "LoadHandlerError",
    "FetchError",
    "ResourceLoadError",
]
