import json
from unittest.mock import MagicMock, Mock

import pytest

from backend_resources.core.keycloak import KeycloakClient, KeycloakUserAdmin
from backend_resources.core.keycloak.exceptions import (
    KeycloakAPIError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from backend_resources.core.models import UserRequest
from backend_resources.core.user_service import UserService

REALM = "ITM"
USER_ID = "5b2b7a3c-13e8-4f32-8a7f-2f7c1b4f7d10"


def _json_response(payload, headers=None):
    return Mock(json=Mock(return_value=payload), headers=headers or {})


@pytest.fixture
def client():
    return MagicMock(spec=KeycloakClient)


@pytest.fixture
def users(client):
    return KeycloakUserAdmin(client)


def test_create_user_returns_id_from_location(users, client):
    client.post.return_value = _json_response(
        None, headers={"Location": f"http://kc/admin/realms/{REALM}/users/{USER_ID}"}
    )

    user_id = users.create_user(REALM, {"username": "bob"})

    assert user_id == USER_ID
    client.post.assert_called_once_with(f"/admin/realms/{REALM}/users", json={"username": "bob"})


def test_create_user_without_location_looks_up_username(users, client):
    client.post.return_value = _json_response(None)
    client.get.return_value = _json_response([
        {"id": "other", "username": "bobby"},
        {"id": USER_ID, "username": "bob"},
    ])

    assert users.create_user(REALM, {"username": "Bob"}) == USER_ID


def test_create_user_succeeds_when_id_lookup_is_forbidden(users, client):
    client.post.return_value = _json_response(None)
    client.get.side_effect = KeycloakAPIError(403, "forbidden", "/users")

    assert users.create_user(REALM, {"username": "bob"}) == ""
    client.post.assert_called_once()


def test_service_reports_created_user_when_id_lookup_fails(users, client, audit_log_file):
    client.post.return_value = _json_response(None)
    client.get.side_effect = KeycloakAPIError(403, "forbidden", "/users")
    service = UserService(users, realm=REALM)

    service.create_user(UserRequest(username="bob", email="bob@example.com", password="hunter22"))

    event = json.loads(audit_log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert event["event_type"] == "create_user"
    assert event["success"] is True
    assert event["details"] == {"user_id": ""}


def test_create_user_conflict(users, client):
    client.post.side_effect = KeycloakAPIError(409, "User exists with same username", "/users")

    with pytest.raises(UserAlreadyExistsError):
        users.create_user(REALM, {"username": "bob"})


def test_create_user_other_errors_propagate(users, client):
    client.post.side_effect = KeycloakAPIError(400, "bad", "/users")

    with pytest.raises(KeycloakAPIError):
        users.create_user(REALM, {"username": "bob"})


def test_search_users_passes_filters(users, client):
    client.get.return_value = _json_response([{"id": USER_ID, "username": "bob"}])

    assert users.search_users(REALM, "bob") == [{"id": USER_ID, "username": "bob"}]
    client.get.assert_called_with(f"/admin/realms/{REALM}/users", params={"username": "bob"})

    users.search_users(REALM, "bob", exact=True)
    client.get.assert_called_with(f"/admin/realms/{REALM}/users", params={"username": "bob", "exact": "true"})


def test_get_user_by_username_requires_exact_match(users, client):
    client.get.return_value = _json_response([{"id": "1", "username": "bobby"}])

    assert users.get_user_by_username(REALM, "bob") is None


def test_get_user(users, client):
    client.get.return_value = _json_response({"id": USER_ID, "email": "bob@example.com"})

    assert users.get_user(REALM, USER_ID)["email"] == "bob@example.com"
    client.get.assert_called_once_with(f"/admin/realms/{REALM}/users/{USER_ID}")


@pytest.mark.parametrize(
    "method, args",
    [
        ("get_user", (REALM, USER_ID)),
        ("delete_user", (REALM, USER_ID)),
        ("get_realm_role_names", (REALM, USER_ID)),
        ("get_group_names", (REALM, USER_ID)),
    ],
)
def test_unknown_user_raises_not_found(users, client, method, args):
    missing = KeycloakAPIError(404, '{"error":"User not found"}', "/users/x")
    client.get.side_effect = missing
    client.delete.side_effect = missing

    with pytest.raises(UserNotFoundError):
        getattr(users, method)(*args)


def test_server_errors_are_not_masked_as_not_found(users, client):
    client.get.side_effect = KeycloakAPIError(500, "boom", "/users/x")

    with pytest.raises(KeycloakAPIError):
        users.get_user(REALM, USER_ID)


def test_delete_user(users, client):
    users.delete_user(REALM, USER_ID)

    client.delete.assert_called_once_with(f"/admin/realms/{REALM}/users/{USER_ID}")


def test_role_and_group_names(users, client):
    def _get(path, **kwargs):
        if path.endswith("/role-mappings/realm"):
            return _json_response([{"id": "r1", "name": "USER"}, {"id": "r2", "name": "MODERATOR"}])
        if path.endswith("/groups"):
            return _json_response([{"id": "g1", "name": "staff", "path": "/staff"}])
        raise AssertionError(path)

    client.get.side_effect = _get

    assert users.get_realm_role_names(REALM, USER_ID) == ["USER", "MODERATOR"]
    assert users.get_group_names(REALM, USER_ID) == ["staff"]


def test_empty_role_mapping(users, client):
    client.get.return_value = _json_response(None)

    assert users.get_realm_role_names(REALM, USER_ID) == []
