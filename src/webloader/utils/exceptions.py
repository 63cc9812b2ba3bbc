"""Custom exceptions for the web resource loader.

Exception Hierarchy:
-------------------
LoaderError (base)
├── InvalidInputError           # Bad resource id, payload or type
│   └── ManifestError           # Malformed manifest file
├── NodeNotFoundError           # Graph operation on an unknown node id
├── CyclicDependencyError       # Circular dependency between resources
├── EmptyPlanError              # Load requested with nothing registered
├── LoadHandlerError            # A resource loaded but its on_load handler raised
└── FetchError                  # A single fetch failed (HTTP status or transport)
    └── ResourceLoadError       # Primary and fallback sources both failed

Usage Guidelines:
----------------
1. Graph and registration errors (InvalidInputError, NodeNotFoundError,
   CyclicDependencyError, EmptyPlanError) are raised before any fetch is issued.

2. FetchError is raised by fetchers; the loader turns it into a fallback attempt
   and, when that also fails, into a ResourceLoadError.

3. LoadHandlerError wraps any exception raised by a resource's on_load handler,
   so a load only ever fails with a LoaderError.

4. Use LoaderError as catch-all for loader-specific errors.
"""


class LoaderError(Exception):
    """Base exception for all loader errors."""

    pass


class InvalidInputError(LoaderError):
    """Raised when a resource id, payload or type is malformed."""

    def __init__(
        self,
        message: str,
        resource_id: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize InvalidInputError.

        Args:
            message: Error message.
            resource_id: Optional id of the resource being registered.
            original_error: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.resource_id = resource_id
        self.original_error = original_error


class ManifestError(InvalidInputError):
    """Raised when a manifest file cannot be parsed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error=original_error)
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.args[0]}"
        return str(self.args[0]) if self.args else "Manifest error"


class NodeNotFoundError(LoaderError):
    """Raised when an operation references a node that is not in the graph."""

    def __init__(self, node_id: str) -> None:
        """
        Initialize NodeNotFoundError.

        Args:
            node_id: The id that was looked up.
        """
        super().__init__(f"Node does not exist: {node_id}")
        self.node_id = node_id


class CyclicDependencyError(LoaderError):
    """
    Raised when circular dependencies are detected in the resource graph.

    Example cycles:
    1. Plugin A requires plugin B, plugin B requires plugin A
    2. A theme stylesheet requires a base stylesheet that requires the theme

    The traversal fails fast on the first back edge it meets. `path` is the
    traversal stack at that moment followed by the revisited node, `cycles`
    holds the looping part of it.
    """

    def __init__(
        self,
        message: str,
        path: list[str] | None = None,
        cycles: list[list[str]] | None = None,
    ) -> None:
        """
        Initialize CyclicDependencyError.

        Args:
            message: Error message.
            path: Traversal path that ended on an already active node.
            cycles: List of detected cycles, where each cycle is a list of node ids.
        """
        super().__init__(message)
        self.path = path or []
        self.cycles = cycles or []


class EmptyPlanError(LoaderError):
    """Raised when a load is requested but the step plan is empty."""

    def __init__(self, message: str = "Nothing to load") -> None:
        super().__init__(message)


class FetchError(LoaderError):
    """Raised when fetching a single URL fails."""

    def __init__(self, message: str, url: str | None = None, status_code: int | None = None) -> None:
        """
        Initialize FetchError.

        Args:
            message: Error message.
            url: URL that was requested.
            status_code: Optional HTTP status code.
        """
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ResourceLoadError(FetchError):
    """
    Raised when a resource cannot be loaded from any of its sources.

    The primary URL failed and either no fallback was configured or the single
    fallback attempt failed as well.
    """

    def __init__(
        self,
        resource_id: str,
        primary_error: Exception,
        fallback_error: Exception | None = None,
    ) -> None:
        """
        Initialize ResourceLoadError.

        Args:
            resource_id: Id of the resource that failed.
            primary_error: Error raised for the primary URL.
            fallback_error: Error raised for the fallback URL, if one was tried.
        """
        if fallback_error is None:
            message = f"Could not load resource '{resource_id}': {primary_error}"
            failed = primary_error
        else:
            message = (
                f"Could not load resource '{resource_id}': {primary_error}; "
                f"fallback also failed: {fallback_error}"
            )
            failed = fallback_error
        super().__init__(
            message,
            url=getattr(failed, "url", None),
            status_code=getattr(failed, "status_code", None),
        )
        self.resource_id = resource_id
        self.primary_error = primary_error
        self.fallback_error = fallback_error


class LoadHandlerError(LoaderError):
    """Raised when a resource loaded but its on_load handler failed."""

    def __init__(self, resource_id: str, original_error: Exception) -> None:
        """
        Initialize LoadHandlerError.

        Args:
            resource_id: Id of the resource whose handler failed.
            original_error: Exception raised by the handler.
        """
        super().__init__(f"on_load handler failed for resource '{resource_id}': {original_error}")
        self.resource_id = resource_id
        self.original_error = original_error
