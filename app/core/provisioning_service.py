"""
Provisioning Service Layer: per-user provisioning sequence

For one user code, runs the request catalog in order against Keycloak:

    addUser ──> findUser ──> getIdGroup ──> putGroup ──> setPassword ──> done
       │
       └── on failure: findUser + DELETE (compensation), then restart at addUser

Identifiers discovered by findUser and getIdGroup are threaded into the
later steps through a ProvisioningContext owned by the run.

Failure policy:
    - addUser fails: compensate and retry, up to ``max_attempts`` creations
    - any other step fails: abort this user, no compensation
    - compensation fails: abort this user
Request and lookup errors never escape ``provision``; CatalogError does.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

from app.config.settings import ProvisioningConfig
from app.core.catalog import (
    ProvisioningContext,
    RequestCatalog,
    RequestTemplate,
    StepKind,
    build_catalog,
    resolve_step,
)
from app.core.keycloak.client import KeycloakClient
from app.core.keycloak.exceptions import (
    AmbiguousMatchError,
    CompensationError,
    GroupNotFoundError,
    NotFoundError,
    RequestError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)


class StepOutcome(Enum):
    ADVANCE = "advance"
    RETRY = "retry"
    ABORT = "abort"


@dataclass
class ProvisioningResult:
    """Terminal state of one user's run."""
    user_code: str
    success: bool = False
    completed_steps: List[StepKind] = field(default_factory=list)
    failed_step: Optional[StepKind] = None
    error: Optional[str] = None
    attempts: int = 0
    compensated: int = 0
    user_id: Optional[str] = None

    @property
    def status(self) -> str:
        return "done" if self.success else "aborted"

    def to_dict(self) -> dict:
        return {
            "user_code": self.user_code,
            "status": self.status,
            "user_id": self.user_id,
            "completed_steps": [str(step) for step in self.completed_steps],
            "failed_step": str(self.failed_step) if self.failed_step else None,
            "error": self.error,
            "attempts": self.attempts,
            "compensated": self.compensated,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Response lookups
# ─────────────────────────────────────────────────────────────────────────────

def select_user_id(users: Any, user_code: str) -> str:
    """Return the id of the user whose username is ``<user_code>@``.

    Matching is exact and case-insensitive.

    Raises:
        UserNotFoundError: No user matches
        AmbiguousMatchError: More than one user matches
    """
    wanted = f"{user_code.lower()}@"
    matches = [
        user for user in (users or [])
        if isinstance(user, dict) and str(user.get("username", "")).lower() == wanted
    ]
    if not matches:
        raise UserNotFoundError(f"No user with username '{wanted}' in search results")
    if len(matches) > 1:
        raise AmbiguousMatchError(f"{len(matches)} users match username '{wanted}'")
    user_id = matches[0].get("id")
    if not user_id:
        raise UserNotFoundError(f"User '{wanted}' has no id in search results")
    return user_id


def select_group_id(groups: Any, group_name: str) -> str:
    """Return the id of the group named exactly ``group_name``.

    Raises:
        GroupNotFoundError: No group has that name
        AmbiguousMatchError: More than one group has that name
    """
    matches = [
        group for group in (groups or [])
        if isinstance(group, dict) and group.get("name") == group_name
    ]
    if not matches:
        raise GroupNotFoundError(f"Group '{group_name}' not found")
    if len(matches) > 1:
        raise AmbiguousMatchError(f"{len(matches)} groups are named '{group_name}'")
    group_id = matches[0].get("id")
    if not group_id:
        raise GroupNotFoundError(f"Group '{group_name}' has no id")
    return group_id


# ─────────────────────────────────────────────────────────────────────────────
# Orchestrator
# ─────────────────────────────────────────────────────────────────────────────

class ProvisioningOrchestrator:
    """Runs the provisioning sequence for one user code at a time.

    The orchestrator holds no per-user state; every call to ``provision``
    builds its own ProvisioningContext, so one instance can serve several
    worker threads.
    """

    def __init__(
        self,
        client: KeycloakClient,
        config: ProvisioningConfig,
        catalog: Optional[RequestCatalog] = None,
    ):
        self.client = client
        self.config = config
        self.catalog = catalog if catalog is not None else build_catalog(config)
        self.max_attempts = max(1, config.max_attempts)

    def provision(self, user_code: str) -> ProvisioningResult:
        """Provision one user and return its terminal state."""
        context = ProvisioningContext(user_code)
        result = ProvisioningResult(user_code)

        index = 0
        while index < len(self.catalog):
            template = self.catalog[index]
            outcome = self._run_step(template, context, result)
            if outcome is StepOutcome.ADVANCE:
                index += 1
            elif outcome is StepOutcome.RETRY:
                context.reset()
                result.completed_steps.clear()
                index = 0
            else:
                return result

        result.success = True
        result.user_id = context.created_user_id
        result.error = None
        result.failed_step = None
        logger.info("Provisioning done for codUser %s (id=%s)", user_code, context.created_user_id)
        return result

    def _run_step(
        self,
        template: RequestTemplate,
        context: ProvisioningContext,
        result: ProvisioningResult,
    ) -> StepOutcome:
        step = template.name
        if step is StepKind.ADD_USER:
            context.add_user_attempts += 1
            result.attempts = context.add_user_attempts

        logger.info("Executing %s for codUser %s...", step, context.user_code)
        try:
            self._execute(template, context)
        except (RequestError, NotFoundError) as exc:
            result.failed_step = step
            result.error = str(exc)
            logger.error("%s failed for codUser %s: %s", step, context.user_code, exc)
            return self._on_failure(step, context, result)

        result.completed_steps.append(step)
        logger.info("%s succeeded for codUser %s", step, context.user_code)
        return StepOutcome.ADVANCE

    def _execute(self, template: RequestTemplate, context: ProvisioningContext) -> None:
        instance = resolve_step(template, context)
        response = self.client.invoke(
            instance.method,
            instance.path,
            params=instance.params,
            json=instance.body,
        )
        if template.name is StepKind.FIND_USER:
            context.created_user_id = select_user_id(response, context.user_code)
        elif template.name is StepKind.GET_GROUP_ID:
            context.target_group_id = select_group_id(response, self.config.target_group)

    def _on_failure(
        self,
        step: StepKind,
        context: ProvisioningContext,
        result: ProvisioningResult,
    ) -> StepOutcome:
        if step is not StepKind.ADD_USER:
            return StepOutcome.ABORT

        if context.add_user_attempts >= self.max_attempts:
            logger.error(
                "Giving up on codUser %s after %d %s attempts",
                context.user_code, context.add_user_attempts, step,
            )
            return StepOutcome.ABORT

        try:
            self._compensate(context)
        except CompensationError as exc:
            result.error = str(exc)
            logger.error("%s", exc)
            return StepOutcome.ABORT

        result.compensated += 1
        return StepOutcome.RETRY

    def _compensate(self, context: ProvisioningContext) -> None:
        """Delete the (partially) created user so addUser can run again.

        Raises:
            CompensationError: If the lookup or the delete fails
        """
        logger.warning("Compensating codUser %s: deleting existing user before retry", context.user_code)
        try:
            lookup = self.catalog.resolve(StepKind.FIND_USER, context)
            users = self.client.invoke(lookup.method, lookup.path, params=lookup.params)
            context.created_user_id = select_user_id(users, context.user_code)

            delete = self.catalog.resolve(StepKind.DELETE_USER, context)
            self.client.invoke(delete.method, delete.path)
        except (RequestError, NotFoundError) as exc:
            raise CompensationError(context.user_code, exc) from exc

        logger.info("Deleted user %s for codUser %s; retrying", context.created_user_id, context.user_code)
        context.created_user_id = None
