"""Pytest configuration and shared fixtures.

Fixtures are organized by category:
- Fake fetchers: In-memory ResourceFetcher implementations
- Graph fixtures: Pre-built dependency graphs
- File fixtures: Manifest and config files in temp directories
"""

import asyncio
from pathlib import Path

import pytest

from src.webloader.config import PolicyConfig
from src.webloader.dependency.graph import DependencyGraph
from src.webloader.execution.fetcher import ResourceFetcher
from src.webloader.execution.loader import ResourceLoader
from src.webloader.models.resource import ResourceType
from src.webloader.models.results import FetchedResource
from src.webloader.utils.exceptions import FetchError

# =============================================================================
# Fake Fetchers
# =============================================================================


class FakeFetcher(ResourceFetcher):
    """
    In-memory fetcher.

    URLs listed in `bodies` succeed with that body; any other URL fails with a
    FetchError. Every call is recorded in `calls`, and the highest number of
    fetches in flight at once is kept in `max_in_flight`.
    """

    def __init__(self, bodies: dict[str, bytes] | None = None, delay: float = 0.0) -> None:
        self.bodies = dict(bodies or {})
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, url: str, resource_type: ResourceType) -> FetchedResource:
        self.calls.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if url not in self.bodies:
                raise FetchError(f"HTTP 404 for {url}", url=url, status_code=404)
            return FetchedResource(
                url=url,
                resource_type=ResourceType(resource_type),
                content=self.bodies[url],
                status_code=200,
            )
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    """Fetcher serving a small set of CDN URLs."""
    return FakeFetcher(
        {
            "https://cdn.example.com/jquery.js": b"/* jquery */",
            "https://cdn.example.com/plugin.js": b"/* plugin */",
            "https://cdn.example.com/theme.css": b"body{}",
            "https://cdn.example.com/app.js": b"/* app */",
            "https://backup.example.com/jquery.js": b"/* jquery backup */",
        }
    )


@pytest.fixture
def loader(fake_fetcher: FakeFetcher) -> ResourceLoader:
    """Loader wired to the fake fetcher."""
    return ResourceLoader(fetcher=fake_fetcher, policy=PolicyConfig(max_concurrent_fetches=4))


# =============================================================================
# Graph Fixtures
# =============================================================================


@pytest.fixture
def graph() -> DependencyGraph:
    """Create a new, empty DependencyGraph."""
    return DependencyGraph()


@pytest.fixture
def diamond_graph() -> DependencyGraph:
    """
    Diamond: a depends on b and c, both of which depend on d.

        a -> b -> d
        a -> c -> d
    """
    graph = DependencyGraph()
    for node_id in ("a", "b", "c", "d"):
        graph.add_node(node_id)
    graph.add_dependency("a", "b")
    graph.add_dependency("a", "c")
    graph.add_dependency("b", "d")
    graph.add_dependency("c", "d")
    return graph


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    """Write a valid manifest with three resources."""
    path = tmp_path / "resources.yaml"
    path.write_text(
        """\
resources:
  - id: jquery
    type: js
    url: https://cdn.example.com/jquery.js
    fallback: https://backup.example.com/jquery.js
  - id: theme
    type: css
    url: https://cdn.example.com/theme.css
  - id: app
    type: js
    url: https://cdn.example.com/app.js
    depends_on: [jquery, theme]
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def cyclic_manifest_file(tmp_path: Path) -> Path:
    """Write a manifest whose resources depend on each other."""
    path = tmp_path / "cyclic.yaml"
    path.write_text(
        """\
resources:
  - id: a
    type: js
    url: https://cdn.example.com/a.js
    depends_on: b
  - id: b
    type: js
    url: https://cdn.example.com/b.js
    depends_on: a
""",
        encoding="utf-8",
    )
    return path
