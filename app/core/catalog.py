"""Request catalog for the per-user provisioning sequence.

Five fixed templates, in the order they must run:

    addUser -> findUser -> getIdGroup -> putGroup -> setPassword

Each template is resolved against a ProvisioningContext into a StepInstance.
URL placeholders are named and filled by a resolver per step kind, so a step
that needs an identifier the context does not hold yet fails loudly with
CatalogError instead of sending a half-substituted URL.
"""
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from app.config.settings import ProvisioningConfig
from app.core.keycloak.exceptions import CatalogError

# Page window used by the Admin console for both lookups
LOOKUP_FIRST = 0
LOOKUP_MAX = 11


class StepKind(str, Enum):
    ADD_USER = "addUser"
    FIND_USER = "findUser"
    GET_GROUP_ID = "getIdGroup"
    ASSIGN_GROUP = "putGroup"
    SET_PASSWORD = "setPassword"
    DELETE_USER = "deleteUser"

    def __str__(self) -> str:
        return self.value


@dataclass
class ProvisioningContext:
    """Mutable state for one user's run. Never shared between users."""
    user_code: str
    created_user_id: Optional[str] = None
    target_group_id: Optional[str] = None
    add_user_attempts: int = 0

    @property
    def username(self) -> str:
        """Username the account is created with (``<code>@``)."""
        return f"{self.user_code}@"

    def reset(self) -> None:
        """Forget discovered identifiers before restarting from the first step."""
        self.created_user_id = None
        self.target_group_id = None


@dataclass(frozen=True)
class StepInstance:
    """A fully resolved request, ready for the invoker."""
    name: StepKind
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    body: Optional[Any] = None


@dataclass(frozen=True)
class RequestTemplate:
    name: StepKind
    method: str
    url_pattern: str
    params: Optional[Dict[str, Any]] = None
    body_template: Optional[Dict[str, Any]] = field(default=None, compare=False)


# ─────────────────────────────────────────────────────────────────────────────
# Resolvers
# ─────────────────────────────────────────────────────────────────────────────

def _require_user_id(template: RequestTemplate, context: ProvisioningContext) -> str:
    if not context.created_user_id:
        raise CatalogError(f"{template.name} requires the created user id for codUser {context.user_code}")
    return context.created_user_id


def _resolve_add_user(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    body = copy.deepcopy(template.body_template) or {}
    for key in ("username", "email"):
        body[key] = body.get(key, "").format(user_code=context.user_code)
    return StepInstance(template.name, template.method, template.url_pattern, body=body)


def _resolve_find_user(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    params = dict(template.params or {})
    params["search"] = context.user_code
    return StepInstance(template.name, template.method, template.url_pattern, params=params)


def _resolve_static(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    return StepInstance(
        template.name,
        template.method,
        template.url_pattern,
        params=dict(template.params) if template.params else None,
        body=copy.deepcopy(template.body_template),
    )


def _resolve_assign_group(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    user_id = _require_user_id(template, context)
    if not context.target_group_id:
        raise CatalogError(f"{template.name} requires the target group id for codUser {context.user_code}")
    path = template.url_pattern.format(user_id=user_id, group_id=context.target_group_id)
    return StepInstance(template.name, template.method, path)


def _resolve_user_scoped(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    user_id = _require_user_id(template, context)
    path = template.url_pattern.format(user_id=user_id)
    return StepInstance(template.name, template.method, path, body=copy.deepcopy(template.body_template))


_RESOLVERS: Dict[StepKind, Callable[[RequestTemplate, ProvisioningContext], StepInstance]] = {
    StepKind.ADD_USER: _resolve_add_user,
    StepKind.FIND_USER: _resolve_find_user,
    StepKind.GET_GROUP_ID: _resolve_static,
    StepKind.ASSIGN_GROUP: _resolve_assign_group,
    StepKind.SET_PASSWORD: _resolve_user_scoped,
    StepKind.DELETE_USER: _resolve_user_scoped,
}


def resolve_step(template: RequestTemplate, context: ProvisioningContext) -> StepInstance:
    """Resolve a template against the current context.

    Raises:
        CatalogError: If the step needs an identifier the context lacks
    """
    return _RESOLVERS[template.name](template, context)


# ─────────────────────────────────────────────────────────────────────────────
# Catalog construction
# ─────────────────────────────────────────────────────────────────────────────

def _escape_braces(value: str) -> str:
    return value.replace("{", "{{").replace("}", "}}")


class RequestCatalog:
    """Ordered provisioning steps plus the compensation delete."""

    def __init__(self, config: ProvisioningConfig):
        self.config = config
        users = f"/admin/realms/{config.realm}/users"

        self.steps: Tuple[RequestTemplate, ...] = (
            RequestTemplate(
                StepKind.ADD_USER,
                "POST",
                users,
                body_template={
                    "attributes": {"locale": config.locale},
                    "requiredActions": [],
                    "emailVerified": False,
                    "username": "{user_code}@",
                    "email": "{user_code}@" + _escape_braces(config.email_domain),
                    "firstName": config.first_name,
                    "lastName": config.last_name,
                    "groups": [],
                    "enabled": True,
                },
            ),
            RequestTemplate(
                StepKind.FIND_USER,
                "GET",
                f"/admin/realms/{config.realm}/ui-ext/brute-force-user",
                params={
                    "briefRepresentation": "true",
                    "first": LOOKUP_FIRST,
                    "max": LOOKUP_MAX,
                    "q": "",
                    "search": "",
                },
            ),
            RequestTemplate(
                StepKind.GET_GROUP_ID,
                "GET",
                f"/admin/realms/{config.realm}/groups",
                params={"first": LOOKUP_FIRST, "max": LOOKUP_MAX},
            ),
            RequestTemplate(
                StepKind.ASSIGN_GROUP,
                "PUT",
                users + "/{user_id}/groups/{group_id}",
            ),
            RequestTemplate(
                StepKind.SET_PASSWORD,
                "PUT",
                users + "/{user_id}/reset-password",
                body_template={
                    "temporary": config.temporary_password,
                    "type": "password",
                    "value": config.initial_password,
                },
            ),
        )
        self.delete_user = RequestTemplate(StepKind.DELETE_USER, "DELETE", users + "/{user_id}")

    def __iter__(self):
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    def __getitem__(self, index: int) -> RequestTemplate:
        return self.steps[index]

    def template(self, kind: StepKind) -> RequestTemplate:
        if kind is StepKind.DELETE_USER:
            return self.delete_user
        for template in self.steps:
            if template.name is kind:
                return template
        raise CatalogError(f"No template registered for step {kind}")

    def resolve(self, kind: StepKind, context: ProvisioningContext) -> StepInstance:
        return resolve_step(self.template(kind), context)


def build_catalog(config: ProvisioningConfig) -> RequestCatalog:
    """Return the ordered request catalog for the configured realm."""
    return RequestCatalog(config)
