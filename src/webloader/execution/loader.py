"""Resource Loader - register resources and load them step by step.

Loading Strategy:
1. Sequential steps: every resource of step N has loaded before step N+1 starts
   - Dependencies finish before any dependant starts
2. Concurrent resources within a step, bounded by a semaphore
   - Siblings in one step have no ordering guarantee between them
3. Per-resource fallback: a failed primary URL is replaced by the fallback URL
   exactly once
4. Fail fast: a resource that fails on every source fails its step and the
   whole load; later steps are never started
"""

import asyncio
import inspect
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from ..config import PolicyConfig
from ..constants import VALID_RESOURCE_TYPES
from ..dependency.graph import DependencyGraph
from ..dependency.planner import Step, StepPlan, StepPlanner
from ..models.resource import ResourceSpec, ResourceType
from ..models.results import FetchedResource, FetchResult
from ..observability.logger import LogContext
from ..observability.reporter import LoadReport, ReportGenerator
from ..utils.exceptions import (
    EmptyPlanError,
    FetchError,
    InvalidInputError,
    LoaderError,
    LoadHandlerError,
    ResourceLoadError,
)
from .fetcher import HttpFetcher, ResourceFetcher

logger = structlog.get_logger(__name__)

OnLoad = Callable[..., Any]


class ResourceLoader:
    """
    Load web resources in dependency order.

    Resources are registered with add_script / add_stylesheet / add_resource
    and related with add_dependency. load() plans the graph into steps and
    fetches each step concurrently.
    """

    def __init__(
        self,
        fetcher: ResourceFetcher | None = None,
        policy: PolicyConfig | None = None,
        graph: DependencyGraph | None = None,
    ) -> None:
        """
        Initialize the loader.

        Args:
            fetcher: Fetcher used for every URL (HttpFetcher with defaults if None)
            policy: Policy configuration for concurrency, fallbacks and step size
            graph: Existing graph to load from (a new empty one if None)
        """
        self.fetcher = fetcher or HttpFetcher()
        self.policy = policy or PolicyConfig()
        self.graph = graph if graph is not None else DependencyGraph()
        self.planner = StepPlanner()

        if self.policy.max_concurrent_fetches < 1:
            raise ValueError(
                f"max_concurrent_fetches must be at least 1, got {self.policy.max_concurrent_fetches}"
            )

        # Runtime state
        self.results: list[FetchResult] = []
        self.report: LoadReport | None = None
        self._semaphore: asyncio.Semaphore | None = None

    async def __aenter__(self) -> "ResourceLoader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying fetcher."""
        await self.fetcher.close()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_script(
        self, resource_id: str, data: Any, on_load: OnLoad | None = None
    ) -> None:
        """Register a script. Does nothing if the id is already registered."""
        self.add_resource(resource_id, data, ResourceType.SCRIPT, on_load)

    def add_stylesheet(
        self, resource_id: str, data: Any, on_load: OnLoad | None = None
    ) -> None:
        """Register a stylesheet. Does nothing if the id is already registered."""
        self.add_resource(resource_id, data, ResourceType.STYLESHEET, on_load)

    def add_resource(
        self,
        resource_id: str,
        data: Any,
        resource_type: ResourceType | str,
        on_load: OnLoad | None = None,
    ) -> None:
        """
        Register a resource. Does nothing if the id is already registered.

        Args:
            resource_id: Unique resource id
            data: ResourceSpec, mapping with `url` and optional `fallback`, or a
                plain URL string
            resource_type: "js" or "css"
            on_load: Optional handler called with the FetchedResource once loaded

        Raises:
            InvalidInputError: If the id, data or type is malformed
        """
        spec = self._build_spec(resource_id, data, resource_type, on_load)

        if self.graph.has_node(resource_id):
            logger.warning("Resource already registered", resource_id=resource_id)
            return

        self.graph.add_node(resource_id, spec)
        logger.debug(
            "Registered resource",
            resource_id=resource_id,
            type=spec.type.value,
            has_fallback=spec.has_fallback,
        )

    def _build_spec(
        self,
        resource_id: Any,
        data: Any,
        resource_type: Any,
        on_load: OnLoad | None,
    ) -> ResourceSpec:
        if not resource_id:
            raise InvalidInputError("Resource id was empty")
        if not isinstance(resource_id, str):
            raise InvalidInputError("Resource id was not a string")

        if not data:
            raise InvalidInputError(f"data was empty for #{resource_id}", resource_id)

        if isinstance(data, str):
            fields: dict[str, Any] = {"url": data}
        elif isinstance(data, ResourceSpec):
            fields = {"url": data.url, "fallback": data.fallback, "on_load": data.on_load}
        elif isinstance(data, Mapping):
            fields = dict(data)
        else:
            raise InvalidInputError(
                f"data was not a mapping or a string for #{resource_id}", resource_id
            )

        if not resource_type:
            raise InvalidInputError(f"type cannot be empty for #{resource_id}", resource_id)
        if not isinstance(resource_type, str):
            raise InvalidInputError(f"type was not a string for #{resource_id}", resource_id)
        try:
            fields["type"] = ResourceType(resource_type)
        except ValueError as e:
            raise InvalidInputError(
                f"type was not a valid value for #{resource_id} "
                f"(expected one of {sorted(VALID_RESOURCE_TYPES)})",
                resource_id,
                e,
            ) from e

        if on_load is not None:
            if not callable(on_load):
                raise InvalidInputError(f"on_load was not callable for #{resource_id}", resource_id)
            fields["on_load"] = on_load

        try:
            return ResourceSpec.model_validate(fields)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first["loc"]) or "data"
            raise InvalidInputError(
                f"data.{field_name} is invalid for #{resource_id}: {first['msg']}",
                resource_id,
                e,
            ) from e

    def remove_resource(self, resource_id: str) -> None:
        """Remove a resource and its dependency edges."""
        self.graph.remove_node(resource_id)

    def has_resource(self, resource_id: str) -> bool:
        return self.graph.has_node(resource_id)

    def get_data(self, resource_id: str) -> ResourceSpec:
        """
        Get the registered payload of a resource.

        Raises:
            NodeNotFoundError: If the resource is not registered
        """
        return self.graph.get_data(resource_id)

    def add_dependency(self, from_id: str, to_id: str) -> bool:
        """
        Declare that `from_id` must load after `to_id`.

        Raises:
            NodeNotFoundError: If either resource is not registered
        """
        return self.graph.add_dependency(from_id, to_id)

    def remove_dependency(self, from_id: str, to_id: str) -> None:
        self.graph.remove_dependency(from_id, to_id)

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def steps(self) -> list[list[str]]:
        """Steps of the current graph as plain lists of ids."""
        return self.graph.steps()

    def plan(self) -> StepPlan:
        """
        Build the step plan for the registered resources.

        Every node payload is checked before planning, so a graph holding
        anything other than a ResourceSpec is rejected before a fetch starts.

        Raises:
            InvalidInputError: If a node payload is not a ResourceSpec
            CyclicDependencyError: If the resources depend on each other in a cycle
            EmptyPlanError: If nothing is registered
        """
        for resource_id in self.graph.nodes:
            self._resource_spec(resource_id)

        plan = self.planner.create_plan(self.graph, max_step_size=self.policy.max_step_size)
        if not plan.steps:
            raise EmptyPlanError("Nothing to load")
        return plan

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> LoadReport:
        """
        Load every registered resource, step by step.

        Returns:
            LoadReport for the finished load (also kept on self.report)

        Raises:
            InvalidInputError: Before any fetch, if a node payload is not a ResourceSpec
            CyclicDependencyError: Before any fetch, if the graph has a cycle
            EmptyPlanError: Before any fetch, if nothing is registered
            ResourceLoadError: If a resource failed on all of its sources
            LoadHandlerError: If an on_load handler raised
        """
        plan = self.plan()

        self.results = []
        self.report = None
        self._semaphore = asyncio.Semaphore(self.policy.max_concurrent_fetches)
        reporter = ReportGenerator()
        start_time = datetime.now()

        logger.info(
            "Starting load",
            total_resources=plan.total_resources,
            step_count=len(plan.steps),
            max_parallelism=plan.max_parallelism,
        )

        try:
            for step in plan.steps:
                with LogContext(step=step.index):
                    logger.info(
                        "Loading step",
                        step_number=step.index + 1,
                        total_steps=len(plan.steps),
                        resources=len(step),
                    )
                    await self.load_step(step)
        except LoaderError as e:
            self.report = reporter.generate_report(start_time, datetime.now(), plan, self.results)
            logger.error(
                "Load aborted",
                error=str(e),
                loaded=self.report.loaded_resources,
                total=plan.total_resources,
            )
            raise

        self.report = reporter.generate_report(start_time, datetime.now(), plan, self.results)
        logger.info(
            "Load complete",
            duration_seconds=f"{self.report.duration_seconds:.2f}",
            loaded=self.report.loaded_resources,
            fallback_used=self.report.fallback_used,
        )
        return self.report

    async def load_step(self, step: Step) -> list[FetchResult]:
        """
        Load all resources of one step concurrently.

        Every resource of the step is allowed to finish; the first failure is
        then raised.

        Raises:
            ResourceLoadError: If any resource of the step failed
            LoadHandlerError: If an on_load handler of the step raised
        """
        tasks = [self.load_resource(resource_id, step.index) for resource_id in step.node_ids]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        results: list[FetchResult] = list(outcomes)
        logger.info(
            "Step completed",
            step=step.index,
            loaded=len(results),
            fallback_used=sum(1 for r in results if r.used_fallback),
        )
        return results
    async def load_resource(self, resource_id: str, step_index: int = 0) -> FetchResult:
        """
        Load one resource, trying its fallback URL once if the primary fails.

        The resource's on_load handler is called exactly once, after whichever
        source succeeded. The result is recorded as successful only once the
        handler has returned.

        Raises:
            NodeNotFoundError: If the resource is not registered
            InvalidInputError: If the stored payload is not a ResourceSpec
            ResourceLoadError: If the primary and the fallback (if any) failed
            LoadHandlerError: If the on_load handler raised
        """
        spec = self._resource_spec(resource_id)

        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.policy.max_concurrent_fetches)

        start = time.perf_counter()
        async with self._semaphore:
            try:
                resource, used_fallback = await self._fetch(resource_id, spec)
            except ResourceLoadError as e:
                self.results.append(
                    FetchResult(
                        resource_id=resource_id,
                        step_index=step_index,
                        success=False,
                        url=e.url,
                        used_fallback=e.fallback_error is not None,
                        error_message=str(e),
                        duration_ms=(time.perf_counter() - start) * 1000,
                    )
                )
                raise

        if spec.on_load is not None:
            try:
                outcome = spec.on_load(resource)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                error = LoadHandlerError(resource_id, e)
                logger.error("on_load handler failed", resource_id=resource_id, error=str(e))
                self.results.append(
                    FetchResult(
                        resource_id=resource_id,
                        step_index=step_index,
                        success=False,
                        url=resource.url,
                        used_fallback=used_fallback,
                        resource=resource,
                        error_message=str(error),
                        duration_ms=(time.perf_counter() - start) * 1000,
                    )
                )
                raise error from e

        result = FetchResult(
            resource_id=resource_id,
            step_index=step_index,
            success=True,
            url=resource.url,
            used_fallback=used_fallback,
            resource=resource,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        self.results.append(result)
        return result

    def _resource_spec(self, resource_id: str) -> ResourceSpec:
        spec = self.get_data(resource_id)
        if not isinstance(spec, ResourceSpec):
            raise InvalidInputError(
                f"data for #{resource_id} is not a resource specification", resource_id
            )
        return spec

    async def _fetch(self, resource_id: str, spec: ResourceSpec) -> tuple[FetchedResource, bool]:
        """Fetch the primary URL, then the fallback once. Returns (resource, used_fallback)."""
        try:
            return await self.fetcher.fetch(spec.url, spec.type), False
        except FetchError as primary_error:
            if spec.fallback is None or not self.policy.use_fallback:
                logger.error(
                    "Resource failed, no fallback", resource_id=resource_id, error=str(primary_error)
                )
                raise ResourceLoadError(resource_id, primary_error) from primary_error

            logger.warning(
                "Primary source failed, trying fallback",
                resource_id=resource_id,
                url=spec.url,
                fallback=spec.fallback,
                error=str(primary_error),
            )
            try:
                return await self.fetcher.fetch(spec.fallback, spec.type), True
            except FetchError as fallback_error:
                logger.error(
                    "Fallback source failed",
                    resource_id=resource_id,
                    fallback=spec.fallback,
                    error=str(fallback_error),
                )
                raise ResourceLoadError(resource_id, primary_error, fallback_error) from fallback_error
