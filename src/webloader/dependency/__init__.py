"""Dependency management for resource ordering."""

from .graph import DependencyGraph
from .planner import Step, StepPlan, StepPlanner

__all__ = [
    "DependencyGraph",
    "Step",
    "StepPlan",
    "StepPlanner",
]
