"""Step Planner - group an acyclic dependency graph into loadable steps.

Overview:
--------
A step is a group of resources whose dependencies are all satisfied by earlier
steps. Steps run sequentially; the members of one step can be fetched
concurrently.

Levelling:
---------
- Nodes without dependencies: level 0
- Any other node: 1 + max(level of its dependencies)

Each node sits in the earliest level its dependencies allow, so no resource
waits longer than it has to. Within a level, ids keep node registration order.

Example:
-------
    app -> jquery, app -> bootstrap-css, plugin -> jquery

    Levels: {jquery: 0, bootstrap-css: 0, app: 1, plugin: 1}
    Steps:  [[jquery, bootstrap-css], [app, plugin]]
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from .graph import DependencyGraph

logger = structlog.get_logger(__name__)


@dataclass
class Step:
    """
    One batch of node ids that can be loaded concurrently.

    Attributes:
        index: Position of the step in the plan
        level: Dependency level the ids belong to
        node_ids: Ids in this step
    """

    index: int
    level: int
    node_ids: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.node_ids)

    def __iter__(self):
        return iter(self.node_ids)


@dataclass
class StepPlan:
    """
    Ordered steps plus plan metadata.

    Attributes:
        steps: Steps in execution order
        total_resources: Number of node ids across all steps
        max_parallelism: Size of the largest step
        metadata: Additional plan metadata
    """

    steps: list[Step] = field(default_factory=list)
    total_resources: int = 0
    max_parallelism: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.steps)

    def as_lists(self) -> list[list[str]]:
        """Plain list-of-lists view of the plan."""
        return [list(step.node_ids) for step in self.steps]


class StepPlanner:
    """Compute step levels and step plans from a DependencyGraph."""

    def levels(self, graph: "DependencyGraph") -> dict[str, int]:
        """
        Assign every node its minimal level.

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        levels: dict[str, int] = {}

        # Dependencies always precede their dependants in the overall order,
        # so each node's dependencies are levelled by the time it is reached.
        for node_id in graph.overall_order():
            dependencies = graph.outgoing_edges[node_id]
            if dependencies:
                levels[node_id] = 1 + max(levels[dep_id] for dep_id in dependencies)
            else:
                levels[node_id] = 0

        return levels

    def steps(self, graph: "DependencyGraph") -> list[list[str]]:
        """
        Group the graph's nodes by level.

        Returns:
            One list of node ids per level, lowest level first. Empty graph -> [].

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        levels = self.levels(graph)
        if not levels:
            return []

        steps: list[list[str]] = [[] for _ in range(max(levels.values()) + 1)]
        for node_id in graph.nodes:
            steps[levels[node_id]].append(node_id)

        logger.debug("Computed steps", step_count=len(steps), node_count=len(levels))
        return steps

    def create_plan(
        self,
        graph: "DependencyGraph",
        max_step_size: int | None = None,
    ) -> StepPlan:
        """
        Create a step plan from a dependency graph.

        Args:
            graph: Dependency graph to plan
            max_step_size: Maximum ids per step (None = unlimited). A wider level
                is split into consecutive steps; levels are never merged.

        Returns:
            StepPlan with steps ready for loading

        Raises:
            CyclicDependencyError: If the graph contains a cycle
            ValueError: If max_step_size is smaller than 1
        """
        if max_step_size is not None and max_step_size < 1:
            raise ValueError(f"max_step_size must be at least 1, got {max_step_size}")

        logger.info("Creating step plan", nodes=len(graph.nodes))

        plan_steps: list[Step] = []
        for level, node_ids in enumerate(self.steps(graph)):
            if max_step_size and len(node_ids) > max_step_size:
                for start in range(0, len(node_ids), max_step_size):
                    plan_steps.append(
                        Step(
                            index=len(plan_steps),
                            level=level,
                            node_ids=node_ids[start : start + max_step_size],
                        )
                    )
            else:
                plan_steps.append(Step(index=len(plan_steps), level=level, node_ids=node_ids))

        plan = StepPlan(
            steps=plan_steps,
            total_resources=sum(len(step) for step in plan_steps),
            max_parallelism=max((len(step) for step in plan_steps), default=0),
            metadata={
                "step_count": len(plan_steps),
                "level_count": plan_steps[-1].level + 1 if plan_steps else 0,
                "max_step_size": max_step_size,
            },
        )

        logger.info(
            "Step plan created",
            steps=len(plan.steps),
            total_resources=plan.total_resources,
            max_parallelism=plan.max_parallelism,
        )
        return plan
