"""webloader - Load web resources in dependency order with fallback URLs."""

from .cli import app
from .config import LoaderConfig
from .dependency.graph import DependencyGraph
from .execution.loader import ResourceLoader

__version__ = "0.1.0"
__all__ = ["app", "DependencyGraph", "LoaderConfig", "ResourceLoader"]
