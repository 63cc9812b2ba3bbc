"""Resource fetchers - the I/O side of loading.

The loader never talks to the network itself; it hands URLs to a
ResourceFetcher. HttpFetcher is the default implementation:
- Async HTTP via httpx with connection pooling
- Optional base URL so manifests can use relative paths
- tenacity-based retry for transport errors (off by default)
"""

from abc import ABC, abstractmethod

import httpx
import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import FetchConfig
from ..constants import ACCEPT_HEADERS
from ..models.resource import ResourceType
from ..models.results import FetchedResource
from ..utils.exceptions import FetchError

logger = structlog.get_logger(__name__)

RETRIABLE_ERRORS = (httpx.NetworkError, httpx.TimeoutException)


class ResourceFetcher(ABC):
    """Fetch a single URL for a resource of a given type."""

    @abstractmethod
    async def fetch(self, url: str, resource_type: ResourceType) -> FetchedResource:
        """
        Fetch one URL.

        Raises:
            FetchError: If the resource could not be retrieved
        """

    async def close(self) -> None:
        """Release any held resources."""

    async def __aenter__(self) -> "ResourceFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class HttpFetcher(ResourceFetcher):
    """
    Fetch resources over HTTP(S) with httpx.

    Connection Pool Configuration:
    - max_connections: Total concurrent connections
    - max_keepalive: Reused connections for efficiency
    """

    def __init__(self, config: FetchConfig | None = None) -> None:
        """
        Initialize the fetcher.

        Args:
            config: Fetch configuration (defaults apply when None)
        """
        self.config = config or FetchConfig()
        self._client: httpx.AsyncClient | None = None  # Lazy-loaded

    @property
    def client(self) -> httpx.AsyncClient:
        """Get HTTP client with lazy initialization."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url or "",
                verify=self.config.verify_ssl,
                timeout=self.config.timeout,
                follow_redirects=self.config.follow_redirects,
                headers={"User-Agent": self.config.user_agent},
                limits=httpx.Limits(
                    max_connections=self.config.max_connections,
                    max_keepalive_connections=self.config.max_keepalive,
                ),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, resource_type: ResourceType) -> FetchedResource:
        """
        GET a resource.

        Args:
            url: Absolute URL, or a path relative to config.base_url
            resource_type: Resource type, used for the Accept header

        Returns:
            FetchedResource with the response body

        Raises:
            FetchError: On transport errors (after retries) or HTTP status >= 400
        """
        headers = {"Accept": ACCEPT_HEADERS[ResourceType(resource_type)]}

        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(RETRIABLE_ERRORS),
                stop=stop_after_attempt(max(1, self.config.retry_attempts)),
                wait=wait_exponential(
                    multiplier=self.config.retry_backoff, min=self.config.retry_backoff, max=10
                ),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying fetch",
                            url=url,
                            attempt=attempt.retry_state.attempt_number,
                        )
                    response = await self.client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Fetch failed", url=url, error=str(e))
            raise FetchError(f"Request to {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            logger.warning("Fetch returned error status", url=url, status=response.status_code)
            raise FetchError(
                f"HTTP {response.status_code} for {url}",
                url=url,
                status_code=response.status_code,
            )

        logger.debug(
            "Fetched resource",
            url=url,
            status=response.status_code,
            bytes=len(response.content),
        )

        return FetchedResource(
            url=str(response.url),
            resource_type=ResourceType(resource_type),
            content=response.content,
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
        )
