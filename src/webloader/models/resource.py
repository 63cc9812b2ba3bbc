"""Resource payload models with Pydantic v2."""

from collections.abc import Callable
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class ResourceType(str, Enum):
    """Kind of web resource; decides how a fetched resource is used."""

    SCRIPT = "js"
    STYLESHEET = "css"


def reject_non_string(v: Any) -> Any:
    """
    Refuse values that pydantic would otherwise coerce into a string.

    Args:
        v: The value to check.

    Returns:
        Any: The original value.

    Raises:
        ValueError: If the value is neither None nor a string.
    """
    if v is not None and not isinstance(v, str):
        raise ValueError(f"expected a string, got {type(v).__name__}")
    return v


StrictUrl = Annotated[str, BeforeValidator(reject_non_string)]


class ResourceSpec(BaseModel):
    """
    Payload stored in the dependency graph for one resource.

    Attributes:
        url: Primary URL
        fallback: URL tried once if the primary URL fails
        type: Resource type (script or stylesheet)
        on_load: Handler called once with the FetchedResource after a successful load
    """

    model_config = ConfigDict(validate_assignment=True)

    url: StrictUrl
    fallback: StrictUrl | None = None
    type: ResourceType
    on_load: Callable[..., Any] | None = Field(default=None, exclude=True, repr=False)

    @field_validator("url")
    @classmethod
    def url_not_empty(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("url cannot be empty")
        return stripped

    @field_validator("fallback")
    @classmethod
    def empty_fallback_is_none(cls, v: str | None) -> str | None:
        # "" means no fallback, matching an omitted key
        if v is None:
            return None
        return v.strip() or None

    @property
    def has_fallback(self) -> bool:
        return self.fallback is not None

    def sources(self) -> list[str]:
        """URLs in the order they are tried."""
        return [self.url] if self.fallback is None else [self.url, self.fallback]
