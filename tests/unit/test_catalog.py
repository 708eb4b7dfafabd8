"""Unit tests for app/core/catalog.py."""
import dataclasses

import pytest

from app.core.catalog import ProvisioningContext, StepKind, build_catalog, resolve_step
from app.core.keycloak.exceptions import CatalogError


def test_catalog_order(config):
    catalog = build_catalog(config)
    assert [template.name for template in catalog] == [
        StepKind.ADD_USER,
        StepKind.FIND_USER,
        StepKind.GET_GROUP_ID,
        StepKind.ASSIGN_GROUP,
        StepKind.SET_PASSWORD,
    ]
    assert [template.method for template in catalog] == ["POST", "GET", "GET", "PUT", "PUT"]


@pytest.mark.parametrize("code", ["U12345", "a1", "x.y-z_9"])
def test_add_user_body_username_and_email(config, code):
    catalog = build_catalog(config)
    instance = catalog.resolve(StepKind.ADD_USER, ProvisioningContext(code))

    assert instance.path == "/admin/realms/demo/users"
    assert instance.body["username"] == f"{code}@"
    assert instance.body["email"] == f"{code}@utp.edu.pe1"
    assert instance.body["firstName"] == "PruebaDEV"
    assert instance.body["attributes"] == {"locale": "en"}
    assert instance.body["enabled"] is True
    assert instance.body["emailVerified"] is False


def test_add_user_body_not_shared_between_users(config):
    catalog = build_catalog(config)
    first = catalog.resolve(StepKind.ADD_USER, ProvisioningContext("A1"))
    second = catalog.resolve(StepKind.ADD_USER, ProvisioningContext("B2"))

    first.body["attributes"]["locale"] = "es"
    assert second.body["username"] == "B2@"
    assert second.body["attributes"] == {"locale": "en"}
    assert catalog[0].body_template["username"] == "{user_code}@"


def test_email_domain_is_configurable(config):
    catalog = build_catalog(dataclasses.replace(config, email_domain="utp.edu.pe"))
    instance = catalog.resolve(StepKind.ADD_USER, ProvisioningContext("U1"))
    assert instance.body["email"] == "U1@utp.edu.pe"


def test_find_user_appends_search(config):
    instance = build_catalog(config).resolve(StepKind.FIND_USER, ProvisioningContext("U12345"))

    assert instance.method == "GET"
    assert instance.path == "/admin/realms/demo/ui-ext/brute-force-user"
    assert instance.params == {
        "briefRepresentation": "true",
        "first": 0,
        "max": 11,
        "q": "",
        "search": "U12345",
    }
    assert list(instance.params)[-1] == "search"


def test_group_listing_is_static(config):
    catalog = build_catalog(config)
    a = catalog.resolve(StepKind.GET_GROUP_ID, ProvisioningContext("A1"))
    b = catalog.resolve(StepKind.GET_GROUP_ID, ProvisioningContext("B2"))
    assert a == b
    assert a.path == "/admin/realms/demo/groups"
    assert a.params == {"first": 0, "max": 11}


def test_assign_group_substitutes_both_ids(config):
    context = ProvisioningContext("U1", created_user_id="uid-1", target_group_id="gid-1")
    instance = build_catalog(config).resolve(StepKind.ASSIGN_GROUP, context)
    assert instance.method == "PUT"
    assert instance.path == "/admin/realms/demo/users/uid-1/groups/gid-1"
    assert instance.body is None


def test_set_password_body(config):
    context = ProvisioningContext("U1", created_user_id="uid-1")
    instance = build_catalog(config).resolve(StepKind.SET_PASSWORD, context)
    assert instance.path == "/admin/realms/demo/users/uid-1/reset-password"
    assert instance.body == {"temporary": False, "type": "password", "value": "1234"}


def test_set_password_uses_configured_secret(config):
    cfg = dataclasses.replace(config, initial_password="S3cret!", temporary_password=True)
    context = ProvisioningContext("U1", created_user_id="uid-1")
    instance = build_catalog(cfg).resolve(StepKind.SET_PASSWORD, context)
    assert instance.body == {"temporary": True, "type": "password", "value": "S3cret!"}


@pytest.mark.parametrize("kind", [StepKind.ASSIGN_GROUP, StepKind.SET_PASSWORD, StepKind.DELETE_USER])
def test_user_scoped_steps_require_user_id(config, kind):
    context = ProvisioningContext("U1", target_group_id="gid-1")
    with pytest.raises(CatalogError):
        build_catalog(config).resolve(kind, context)


def test_assign_group_requires_group_id(config):
    context = ProvisioningContext("U1", created_user_id="uid-1")
    with pytest.raises(CatalogError, match="target group id"):
        build_catalog(config).resolve(StepKind.ASSIGN_GROUP, context)


def test_delete_user_is_not_in_ordered_steps(config):
    catalog = build_catalog(config)
    assert StepKind.DELETE_USER not in [template.name for template in catalog]
    instance = resolve_step(catalog.delete_user, ProvisioningContext("U1", created_user_id="uid-9"))
    assert (instance.method, instance.path) == ("DELETE", "/admin/realms/demo/users/uid-9")


def test_context_reset_forgets_ids():
    context = ProvisioningContext("U1", created_user_id="uid-1", target_group_id="gid-1")
    context.add_user_attempts = 2
    context.reset()
    assert context.created_user_id is None
    assert context.target_group_id is None
    assert context.add_user_attempts == 2
