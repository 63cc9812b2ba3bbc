"""YAML manifest parser.

Overview:
--------
A manifest declares resources and their dependencies in one file, so a load
can be described without code:

```
resources:
  - id: jquery
    type: js
    url: https://cdn.example.com/jquery.min.js
    fallback: https://static.example.com/jquery.min.js
  - id: theme
    type: css
    url: /static/theme.css
  - id: app
    type: js
    url: /static/app.js
    depends_on: [jquery, theme]
```

Entries are validated with Pydantic models. Dependencies may reference
entries declared later in the file; they are wired after all resources are
registered.

Error Handling:
--------------
- FileNotFoundError: manifest file doesn't exist
- ManifestError: invalid YAML, wrong structure, or an entry failing validation
- NodeNotFoundError: depends_on names an id that is not declared (build_loader)
"""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import structlog
import yaml
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError

from ..models.resource import ResourceType, reject_non_string
from ..utils.exceptions import ManifestError

if TYPE_CHECKING:
    from ..config import LoaderConfig
    from ..execution.fetcher import ResourceFetcher
    from ..execution.loader import ResourceLoader

logger = structlog.get_logger(__name__)


def as_list(v: Any) -> Any:
    """Accept a single dependency id in place of a list."""
    if v is None:
        return []
    if isinstance(v, str):
        return [v]
    return v


class ManifestEntry(BaseModel):
    """One resource declaration."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: Annotated[str, BeforeValidator(reject_non_string)] = Field(min_length=1)
    type: ResourceType
    url: Annotated[str, BeforeValidator(reject_non_string)] = Field(min_length=1)
    fallback: Annotated[str | None, BeforeValidator(reject_non_string)] = None
    depends_on: Annotated[list[str], BeforeValidator(as_list)] = Field(
        default_factory=list, alias="depends-on"
    )


class Manifest(BaseModel):
    """A parsed manifest."""

    model_config = ConfigDict(extra="forbid")

    resources: list[ManifestEntry] = Field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [entry.id for entry in self.resources]

    def build_loader(
        self,
        fetcher: "ResourceFetcher | None" = None,
        config: "LoaderConfig | None" = None,
    ) -> "ResourceLoader":
        """
        Create a ResourceLoader with every entry and dependency registered.

        Args:
            fetcher: Fetcher for the loader (HttpFetcher from config if None)
            config: Loader configuration (defaults if None)

        Returns:
            Configured ResourceLoader

        Raises:
            InvalidInputError: If an entry cannot be registered
            NodeNotFoundError: If a dependency names an undeclared id
        """
        from ..config import LoaderConfig
        from ..execution.fetcher import HttpFetcher
        from ..execution.loader import ResourceLoader

        config = config or LoaderConfig()
        loader = ResourceLoader(
            fetcher=fetcher or HttpFetcher(config.fetch),
            policy=config.policy,
        )

        for entry in self.resources:
            if loader.has_resource(entry.id):
                logger.warning("Duplicate manifest entry ignored", resource_id=entry.id)
                continue
            loader.add_resource(
                entry.id, {"url": entry.url, "fallback": entry.fallback}, entry.type
            )

        for entry in self.resources:
            for dependency_id in entry.depends_on:
                loader.add_dependency(entry.id, dependency_id)

        logger.info(
            "Loader built from manifest",
            resources=len(loader.graph),
            edges=sum(len(deps) for deps in loader.graph.outgoing_edges.values()),
        )
        return loader


def load_manifest(path: Path) -> Manifest:
    """
    Read and validate a manifest file.

    Args:
        path: Path to the YAML manifest

    Returns:
        Validated Manifest

    Raises:
        FileNotFoundError: If the file doesn't exist
        ManifestError: If the content is not a valid manifest
    """
    if not path.exists():
        raise FileNotFoundError(f"Manifest file not found: {path}")

    logger.info("Reading manifest", path=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ManifestError(f"Invalid YAML: {e}", path=str(path), original_error=e) from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ManifestError(
            f"expected a mapping with a 'resources' list, got {type(data).__name__}",
            path=str(path),
        )

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ManifestError(f"{location}: {first['msg']}", path=str(path), original_error=e) from e

    logger.info("Manifest parsed", resources=len(manifest.resources))
    return manifest
