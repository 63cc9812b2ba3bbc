"""Result types for fetch and load operations."""

from dataclasses import dataclass, field
from typing import Any

from .resource import ResourceType


@dataclass
class FetchedResource:
    """
    A resource body returned by a fetcher.

    Attributes:
        url: URL the body was fetched from
        resource_type: Type the resource was requested as
        content: Raw response body
        status_code: HTTP status code (None for non-HTTP fetchers)
        content_type: Content-Type reported by the source
    """

    url: str
    resource_type: ResourceType
    content: bytes = b""
    status_code: int | None = None
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class FetchResult:
    """
    Result of loading a single resource.

    Attributes:
        resource_id: Id of the resource in the graph
        step_index: Index of the step the resource was loaded in
        success: Whether a source succeeded and the on_load handler returned
        url: URL that produced the body (primary or fallback)
        used_fallback: Whether the fallback URL was used
        resource: Fetched body, whenever a source succeeded
        error_message: Error details if failed
        duration_ms: Time spent on all attempts in milliseconds
    """

    resource_id: str
    step_index: int
    success: bool
    url: str | None = None
    used_fallback: bool = False
    resource: FetchedResource | None = None
    error_message: str | None = None
    duration_ms: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
