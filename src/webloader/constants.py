"""Configuration constants for the web resource loader.

Named constants for defaults and file naming shared by the config, fetcher and CLI.
"""

from .models.resource import ResourceType

# -----------------------------------------------------------------------------
# Resource Types
# -----------------------------------------------------------------------------

# Type values accepted at registration ("js", "css")
VALID_RESOURCE_TYPES: frozenset[str] = frozenset(t.value for t in ResourceType)

# File extension used when writing a fetched resource to disk
RESOURCE_FILE_EXTENSIONS: dict[ResourceType, str] = {
    ResourceType.SCRIPT: ".js",
    ResourceType.STYLESHEET: ".css",
}

# Accept header sent for each resource type
ACCEPT_HEADERS: dict[ResourceType, str] = {
    ResourceType.SCRIPT: "application/javascript, text/javascript, */*;q=0.8",
    ResourceType.STYLESHEET: "text/css, */*;q=0.8",
}


# -----------------------------------------------------------------------------
# Fetch Defaults
# -----------------------------------------------------------------------------

DEFAULT_TIMEOUT_SECONDS: float = 30.0

DEFAULT_MAX_CONCURRENT_FETCHES: int = 10

DEFAULT_USER_AGENT: str = "webloader/0.1.0"
