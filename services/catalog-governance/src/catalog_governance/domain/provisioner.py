"""Role-access provisioning: the infrastructure grants a role needs to reach the service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from catalog_core.enums import PermissionKind, ProvisioningAction
from catalog_core.exceptions import QueryExecutionError
from catalog_core.telemetry.metrics import record_provisioning_step
from catalog_core.warehouse.sql import validate_identifier, validate_object_name
from pydantic import BaseModel, Field, computed_field

if TYPE_CHECKING:
    from catalog_core.auth.models import Principal
    from catalog_core.settings import ServiceAccessSettings
    from catalog_core.warehouse.executor import QueryExecutor

    from catalog_governance.domain.permission_service import PermissionService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningStep:
    name: str
    privilege: str

    def statement(self, action: ProvisioningAction, role: str) -> str:
        if action == ProvisioningAction.GRANT:
            return f"GRANT {self.privilege} TO ROLE {role}"
        return f"REVOKE {self.privilege} FROM ROLE {role}"


def service_access_steps(settings: ServiceAccessSettings) -> tuple[ProvisioningStep, ...]:
    """The ordered grants that let a role use the catalog service."""
    database = validate_identifier(settings.database)
    schema = validate_object_name(f"{database}.{settings.schema_name}", parts=2)
    service = validate_object_name(f"{schema}.{settings.service}", parts=3)
    endpoint_role = validate_identifier(settings.endpoint_role)
    return (
        ProvisioningStep("service_role", f"SERVICE ROLE {service}!{endpoint_role}"),
        ProvisioningStep("endpoint_binding", "BIND SERVICE ENDPOINT ON ACCOUNT"),
        ProvisioningStep("compute_pool_usage", f"USAGE ON COMPUTE POOL {validate_identifier(settings.compute_pool)}"),
        ProvisioningStep("database_usage", f"USAGE ON DATABASE {database}"),
        ProvisioningStep("schema_usage", f"USAGE ON SCHEMA {schema}"),
        ProvisioningStep("table_access", f"SELECT, INSERT, UPDATE, DELETE ON ALL TABLES IN SCHEMA {schema}"),
        ProvisioningStep("warehouse_usage", f"USAGE ON WAREHOUSE {validate_identifier(settings.warehouse)}"),
    )


class StepFailure(BaseModel):
    step: str
    statement: str
    error: str


class ProvisioningResult(BaseModel):
    role: str
    action: ProvisioningAction
    succeeded: list[str] = Field(default_factory=list)
    failed: list[StepFailure] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> str:
        return "full" if not self.failed else "partial"


class RoleAccessProvisioner:
    """Grants or revokes service access for a role, one independent statement per step.

    A failed step is recorded and the remaining steps still run.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        permissions: PermissionService,
        settings: ServiceAccessSettings,
    ) -> None:
        self._executor = executor
        self._permissions = permissions
        self._steps = service_access_steps(settings)

    @property
    def steps(self) -> tuple[ProvisioningStep, ...]:
        return self._steps

    async def grant(self, role: str, *, principal: Principal) -> ProvisioningResult:
        return await self._run(ProvisioningAction.GRANT, role, principal, self._steps)

    async def revoke(self, role: str, *, principal: Principal) -> ProvisioningResult:
        return await self._run(ProvisioningAction.REVOKE, role, principal, tuple(reversed(self._steps)))

    async def _run(
        self,
        action: ProvisioningAction,
        role: str,
        principal: Principal,
        steps: tuple[ProvisioningStep, ...],
    ) -> ProvisioningResult:
        await self._permissions.require(principal, PermissionKind.MANAGE_ROLES)
        role = validate_identifier(role).upper()
        result = ProvisioningResult(role=role, action=action)

        for step in steps:
            statement = step.statement(action, role)
            try:
                await self._executor.execute(statement, principal)
            except QueryExecutionError as e:
                logger.warning("Service access %s step %s failed for role %s: %s", action, step.name, role, e)
                result.failed.append(StepFailure(step=step.name, statement=statement, error=str(e)))
                record_provisioning_step(action, step.name, succeeded=False)
            else:
                result.succeeded.append(step.name)
                record_provisioning_step(action, step.name, succeeded=True)

        logger.info(
            "%s %s service access for role %s: %d succeeded, %d failed",
            principal.actor,
            action,
            role,
            len(result.succeeded),
            len(result.failed),
        )
        return result
