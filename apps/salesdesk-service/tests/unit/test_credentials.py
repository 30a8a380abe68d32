import hashlib
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import jwt
import pytest

from salesdesk.api.permissions import Actor
from salesdesk.db.adapters.supabase import SupabaseRepository
from salesdesk.errors import Forbidden, ForbiddenReason, NotFound, ValidationFailed
from salesdesk.services.auth_service import ALGORITHM, CredentialManager, check_password_strength
from salesdesk.utils.passwords import verify_password


@pytest.fixture
def credentials(sql_repo, settings):
    return CredentialManager(sql_repo, settings)


def _legacy_hash(plaintext, salt="a1b2c3d4"):
    digest = hashlib.scrypt(plaintext.encode(), salt=salt.encode(), n=16384, r=8, p=1, dklen=64)
    return f"{digest.hex()}.{salt}"


def test_manager_needs_a_secret(sql_repo, settings):
    with pytest.raises(ValueError):
        CredentialManager(sql_repo, replace(settings, session_secret=""))


def test_login_returns_token_for_valid_credentials(credentials, sql_tenants, plain_password):
    token, user = credentials.login("ANA@alfa.com", plain_password)
    assert user.id == sql_tenants.users.agent_a1.id
    actor = credentials.verify_session(token)
    assert actor == Actor(id=user.id, role="agent", organization_id=sql_tenants.org_a.id)


@pytest.mark.parametrize("email,password", [
    ("ana@alfa.com", "wrong-password"),
    ("ghost@alfa.com", "correct-horse"),
    ("", ""),
])
def test_login_failures_look_the_same(credentials, sql_tenants, email, password):
    with pytest.raises(Forbidden) as exc:
        credentials.login(email, password)
    assert exc.value.reason == ForbiddenReason.UNAUTHENTICATED
    assert exc.value.message == "Invalid email or password"


def test_expired_token_is_rejected(credentials, sql_tenants):
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = credentials.issue_session(sql_tenants.users.agent_a1, now=issued)
    assert credentials.verify_session(token) is None


def test_tampered_token_is_rejected(credentials, sql_tenants):
    token = credentials.issue_session(sql_tenants.users.agent_a1)
    claims = jwt.decode(token, options={"verify_signature": False})
    claims["role"] = "superadmin"
    forged = jwt.encode(claims, "another-secret", algorithm=ALGORITHM)
    assert credentials.verify_session(forged) is None
    assert credentials.verify_session(token[:-3] + "abc") is None
    assert credentials.verify_session("not-a-token") is None
    assert credentials.verify_session(None) is None


def test_token_with_unknown_role_is_rejected(credentials, settings):
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {"sub": "u1", "role": "owner", "org": 1, "iat": now, "exp": now + timedelta(minutes=5)},
        settings.session_secret,
        algorithm=ALGORITHM,
    )
    assert credentials.verify_session(token) is None


def test_resolve_actor_reloads_current_role(credentials, sql_repo, sql_tenants):
    token = credentials.issue_session(sql_tenants.users.agent_a1)
    sql_repo.update_user(sql_tenants.users.agent_a1.id, {"role": "manager"})
    assert credentials.resolve_actor(token).role == "manager"


def test_resolve_actor_for_deleted_user(credentials, sql_repo, sql_tenants):
    token = credentials.issue_session(sql_tenants.users.agent_a2)
    sql_repo.delete_user(sql_tenants.users.agent_a2.id)
    assert credentials.resolve_actor(token) is None


def test_legacy_hash_is_upgraded_on_login(credentials, sql_repo, sql_tenants):
    user_id = sql_tenants.users.agent_a1.id
    sql_repo.update_user(user_id, {"password_hash": _legacy_hash("old-secret")})

    credentials.login("ana@alfa.com", "old-secret")

    upgraded = sql_repo.get_user(user_id).password_hash
    assert upgraded.startswith("$argon2")
    assert verify_password("old-secret", upgraded)


def test_reset_password_generates_new_password(credentials, sql_repo, sql_tenants, plain_password):
    target = sql_tenants.users.agent_a1
    new_password = credentials.reset_password(sql_tenants.actors.manager_a, target.id)
    assert new_password and new_password != plain_password
    stored = sql_repo.get_user(target.id).password_hash
    assert verify_password(new_password, stored)
    assert not verify_password(plain_password, stored)


def test_reset_password_outside_scope(credentials, sql_tenants):
    with pytest.raises(Forbidden) as exc:
        credentials.reset_password(sql_tenants.actors.manager_b, sql_tenants.users.agent_a1.id)
    assert exc.value.reason == ForbiddenReason.WRONG_ORGANIZATION


def test_reset_password_delegates_to_identity_service(settings):
    repo = MagicMock()
    repo.backend = "supabase"
    repo.get_user.return_value = MagicMock(id="u1", email="ana@alfa.com", organization_id=1)
    repo.request_password_recovery.return_value = True
    manager = Actor(id="m1", role="manager", organization_id=1)

    assert CredentialManager(repo, settings).reset_password(manager, "u1") is None
    repo.request_password_recovery.assert_called_once_with("ana@alfa.com")
    repo.update_user.assert_not_called()


def test_reset_password_on_supabase_backend_sends_recovery(settings):
    client = MagicMock()
    repo = SupabaseRepository(client)
    assert repo.request_password_recovery("ana@alfa.com") is True
    client.recover.assert_called_once_with("ana@alfa.com")


def test_change_own_password_requires_current(credentials, sql_tenants, plain_password):
    me = sql_tenants.actors.agent_a1
    with pytest.raises(ValidationFailed) as exc:
        credentials.change_password(me, me.id, "brand-new-pass")
    assert "user.current_password" in exc.value.field_errors

    credentials.change_password(me, me.id, "brand-new-pass", current_password=plain_password)
    token, _ = credentials.login("ana@alfa.com", "brand-new-pass")
    assert token


def test_manager_changes_agent_password_without_current(credentials, sql_tenants):
    credentials.change_password(sql_tenants.actors.manager_a, sql_tenants.users.agent_a2.id, "set-by-manager")
    _, user = credentials.login("alan@alfa.com", "set-by-manager")
    assert user.id == sql_tenants.users.agent_a2.id


def test_agent_cannot_change_colleague_password(credentials, sql_tenants):
    with pytest.raises(Forbidden):
        credentials.change_password(sql_tenants.actors.agent_a1, sql_tenants.users.agent_a2.id, "hijacked!")


def test_change_password_for_missing_user(credentials, sql_tenants):
    with pytest.raises(NotFound):
        credentials.change_password(sql_tenants.actors.admin, "missing-user", "whatever1")


def test_password_strength():
    assert check_password_strength("123456") == "123456"
    with pytest.raises(ValidationFailed):
        check_password_strength("12345")
    with pytest.raises(ValidationFailed):
        check_password_strength(None)


def test_hash_and_verify(credentials):
    encoded = credentials.hash_password("p@ss-one")
    assert credentials.verify_password("p@ss-one", encoded)
    assert not credentials.verify_password("p@ss-two", encoded)


@pytest.fixture
def admin_in_org_a(sql_repo, sql_tenants):
    admin = sql_tenants.users.admin
    return sql_repo.update_user(admin.id, {"organization_id": sql_tenants.org_a.id})


def test_manager_cannot_reset_superadmin_password(credentials, sql_repo, sql_tenants, admin_in_org_a, password_hash):
    with pytest.raises(Forbidden) as exc:
        credentials.reset_password(sql_tenants.actors.manager_a, admin_in_org_a.id)
    assert exc.value.reason == ForbiddenReason.ROLE_NOT_PERMITTED
    assert sql_repo.get_user(admin_in_org_a.id).password_hash == password_hash


def test_manager_cannot_change_superadmin_password(credentials, sql_tenants, admin_in_org_a, plain_password):
    with pytest.raises(Forbidden) as exc:
        credentials.change_password(sql_tenants.actors.manager_a, admin_in_org_a.id, "owned-by-manager")
    assert exc.value.reason == ForbiddenReason.ROLE_NOT_PERMITTED
    _, user = credentials.login("root@example.com", plain_password)
    assert user.role == "superadmin"


def test_manager_cannot_reset_another_manager(credentials, sql_repo, sql_tenants, password_hash):
    colleague = sql_repo.create_user({
        "name": "Mauro",
        "email": "mauro@alfa.com",
        "password_hash": password_hash,
        "role": "manager",
        "organization_id": sql_tenants.org_a.id,
    })
    with pytest.raises(Forbidden):
        credentials.reset_password(sql_tenants.actors.manager_a, colleague.id)


def test_manager_changes_own_password(credentials, sql_tenants, plain_password):
    me = sql_tenants.actors.manager_a
    credentials.change_password(me, me.id, "marta-new-pass", current_password=plain_password)
    _, user = credentials.login("marta@alfa.com", "marta-new-pass")
    assert user.id == me.id


def test_superadmin_resets_superadmin_in_any_organization(credentials, sql_repo, sql_tenants, password_hash):
    other = sql_repo.create_user({
        "name": "Second Root",
        "email": "root2@example.com",
        "password_hash": password_hash,
        "role": "superadmin",
        "organization_id": sql_tenants.org_b.id,
    })
    assert credentials.reset_password(sql_tenants.actors.admin, other.id)
