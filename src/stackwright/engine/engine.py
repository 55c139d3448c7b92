"""Plan/deploy/destroy orchestration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stackwright import __version__
from stackwright.engine.adapters import EngineContext
from stackwright.engine.apply import ApplyEngine
from stackwright.engine.destroy import DestroyEngine
from stackwright.engine.diff import diff
from stackwright.engine.errors import ValidationError
from stackwright.engine.resolver import validate_model
from stackwright.engine.types import DeploymentResult, Plan, PlanMetadata

if TYPE_CHECKING:
    from stackwright.core.state import DeploymentState
    from stackwright.core.store import StateStore
    from stackwright.engine.adapters import AdapterRegistry
    from stackwright.engine.retry import RetryPolicy
    from stackwright.engine.types import DestroyResult
    from stackwright.resources.model import ResourceModel

logger = logging.getLogger(__name__)


class StackEngine:
    """Reconciles a resource model against one deployment's state.

    ``plan`` is read-only and takes no lease.  ``deploy`` and ``destroy`` hold
    the deployment's lease for their whole run, so a concurrent run against
    the same (project, stage, region) fails fast with
    ``ConcurrentDeploymentError`` before any provider call.

    With the default ``max_workers=1`` resources are applied one at a time in
    dependency order, so a permanent failure leaves every later resource
    unattempted.  A larger pool fans out independent branches; siblings already
    in flight when a failure is seen still finish and are committed.
    """

    def __init__(
        self,
        store: StateStore,
        registry: AdapterRegistry,
        *,
        max_workers: int = 1,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._max_workers = max_workers
        self._retry = retry

    @property
    def store(self) -> StateStore:
        return self._store

    @staticmethod
    def _ctx(model: ResourceModel) -> EngineContext:
        return EngineContext(
            project=model.project,
            stage=model.stage,
            region=model.region,
            account_id=model.account_id,
        )

    def validate(self, model: ResourceModel) -> None:
        """Pre-flight checks: references, cycles, adapters and adapter-level rules.

        Raises:
            ValidationError: If any declaration is rejected.
            UnknownResourceKindError: If a declared kind has no adapter.
        """
        validate_model(model.resources)
        self._registry.require({r.kind for r in model.resources})
        ctx = self._ctx(model)
        errors: list[str] = []
        for r in model.resources:
            errors.extend(self._registry.get(r.kind).validate(ctx, r))
        if errors:
            raise ValidationError(errors)

    def _plan_from_state(self, model: ResourceModel, state: DeploymentState) -> Plan:
        order = model.order()
        ordered = [model.get(n) for n in order]
        metadata = PlanMetadata(
            project=model.project,
            stage=model.stage,
            region=model.region,
            state_lineage=state.lineage,
            state_serial=state.serial,
            engine_version=__version__,
        )
        return Plan(metadata=metadata, diff=diff(ordered, state), order=order)

    def plan(self, model: ResourceModel) -> Plan:
        """Compute what ``deploy`` would do, without taking the lease or writing."""
        logger.info("Planning %d resources for %s", len(model), model.key)
        self.validate(model)
        state = self._store.load(model.project, model.stage, model.region)
        return self._plan_from_state(model, state)

    def deploy(self, model: ResourceModel) -> DeploymentResult:
        """Create/update declared resources, then prune non-stateful orphans.

        Raises:
            ApplyError: On a permanent failure; carries the partial result.
            ConcurrentDeploymentError: If another run holds the lease.
        """
        logger.info("Deploying %d resources to %s", len(model), model.key)
        self.validate(model)
        ctx = self._ctx(model)

        with self._store.lease(model.project, model.stage, model.region):
            state = self._store.load(model.project, model.stage, model.region)
            plan = self._plan_from_state(model, state)
            changes = plan.diff

            applier = ApplyEngine(
                self._store,
                self._registry,
                ctx,
                retry=self._retry,
                max_workers=self._max_workers,
            )
            result = applier.apply(plan.changes)
            result.unchanged = [c.name for c in changes.unchanged if c.name not in result.updated]
            result.retained = [c.name for c in changes.retained]

            if changes.to_delete:
                pruned = DestroyEngine(
                    self._store,
                    self._registry,
                    ctx,
                    retry=self._retry,
                    max_workers=self._max_workers,
                ).destroy(
                    self._store.snapshot(),
                    force=False,
                    names=[c.name for c in changes.to_delete],
                )
                result.deleted = pruned.deleted
                result.failed.extend(pruned.failed)

        logger.info("Deploy finished: %s", result.summary())
        return result

    def destroy(
        self, project: str, stage: str, region: str, *, force: bool = False
    ) -> DestroyResult:
        """Tear down everything recorded for (project, stage, region)."""
        logger.info("Destroying %s/%s/%s (force=%s)", project, stage, region, force)
        ctx = EngineContext(project=project, stage=stage, region=region)
        with self._store.lease(project, stage, region):
            state = self._store.load(project, stage, region)
            result = DestroyEngine(
                self._store,
                self._registry,
                ctx,
                retry=self._retry,
                max_workers=self._max_workers,
            ).destroy(state, force=force)
        logger.info("Destroy finished: %s", result.summary())
        return result
