"""
Credential and session manager.

Hashes and verifies passwords, issues and verifies signed session tokens,
and runs password resets and changes against whichever repository is active.
Nothing here logs a password, hash or token.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt

from salesdesk.api.permissions import Actor, Operation, decide
from salesdesk.db import schemas
from salesdesk.db.repository import Repository
from salesdesk.errors import (
    Forbidden,
    ForbiddenReason,
    NotFound,
    RepositoryError,
    ValidationFailed,
)
from salesdesk.utils import passwords
from salesdesk.utils.role_permissions import ALLOWED_ROLES, PROTECTED_FROM_MANAGER, ROLE_MANAGER
from salesdesk.utils.scopes import USER, ensure_in_scope, raise_if_denied
from salesdesk.utils.settings import Settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6

# Verified when the email is unknown so a miss costs the same as a wrong password.
_DUMMY_HASH = passwords.hash_password("salesdesk-timing-equalizer")


def check_password_strength(password: Optional[str], field: str = "user.password") -> str:
    if password is None or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed({field: f"must be at least {MIN_PASSWORD_LENGTH} characters"})
    return password


class CredentialManager:
    """Login, session tokens and password lifecycle."""

    def __init__(self, repository: Repository, settings: Settings):
        if not settings.session_secret:
            raise ValueError("session secret is required")
        self.repo = repository
        self.secret = settings.session_secret
        self.ttl = timedelta(hours=settings.session_ttl_hours)

    # passwords
    @staticmethod
    def hash_password(plaintext: str) -> str:
        return passwords.hash_password(plaintext)

    @staticmethod
    def verify_password(plaintext: str, encoded_hash: str) -> bool:
        return passwords.verify_password(plaintext, encoded_hash)

    def authenticate(self, email: str, password: str) -> Optional[schemas.User]:
        """Return the user when ``password`` matches, else None."""
        user = self.repo.get_user_by_email(email)
        if user is None or not user.password_hash:
            passwords.verify_password(password or "", _DUMMY_HASH)
            return None
        if not passwords.verify_password(password or "", user.password_hash):
            return None
        if passwords.needs_rehash(user.password_hash):
            # legacy scrypt hashes are upgraded on the first successful login
            try:
                self.repo.update_user(user.id, {"password_hash": passwords.hash_password(password)})
            except RepositoryError as exc:
                logger.warning("Could not upgrade password hash for user %s: %s", user.id, exc.code)
        return user

    def login(self, email: str, password: str) -> Tuple[str, schemas.User]:
        user = self.authenticate(email, password)
        if user is None:
            logger.info("Failed login attempt")
            raise Forbidden(ForbiddenReason.UNAUTHENTICATED, "Invalid email or password")
        return self.issue_session(user), user

    # sessions
    def issue_session(self, user: schemas.User, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user.id),
            "role": user.role,
            "org": user.organization_id,
            "iat": now,
            "exp": now + self.ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def verify_session(self, token: Optional[str]) -> Optional[Actor]:
        """Actor carried by ``token``; None for expired, forged or malformed tokens."""
        if not token:
            return None
        try:
            claims = jwt.decode(
                token, self.secret, algorithms=[ALGORITHM], options={"require": ["sub", "exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired session token")
            return None
        except jwt.PyJWTError:
            logger.debug("Rejected invalid session token")
            return None
        subject = claims.get("sub")
        role = claims.get("role")
        org = claims.get("org")
        if not isinstance(subject, str) or role not in ALLOWED_ROLES:
            return None
        if org is not None and not isinstance(org, int):
            return None
        return Actor(id=subject, role=role, organization_id=org)

    # password lifecycle
    def _target_user(self, actor: Actor, user_id: str) -> schemas.User:
        scope = decide(actor, USER, Operation.UPDATE)
        raise_if_denied(scope)
        user = self.repo.get_user(user_id)
        ensure_in_scope(scope, USER, user)
        if (
            actor.role == ROLE_MANAGER
            and str(user.id) != str(actor.id)
            and user.role in PROTECTED_FROM_MANAGER
        ):
            raise Forbidden(
                ForbiddenReason.ROLE_NOT_PERMITTED,
                "You cannot manage the credentials of managers or superadmins",
            )
        return user

    def reset_password(self, actor: Actor, user_id: str) -> Optional[str]:
        """Reset a user's password.

        Backends with their own identity service send the recovery message and
        None is returned. Otherwise a new random password replaces the old hash
        in a single update and the plaintext is returned to the caller once.
        """
        user = self._target_user(actor, user_id)
        if self.repo.request_password_recovery(user.email):
            logger.info("Password recovery delegated to %s for user %s", self.repo.backend, user.id)
            return None
        plaintext = passwords.generate_password()
        self.repo.update_user(user.id, {"password_hash": passwords.hash_password(plaintext)})
        logger.info("Password reset for user %s by %s", user.id, actor.id)
        return plaintext

    def change_password(
        self,
        actor: Actor,
        user_id: str,
        new_password: str,
        current_password: Optional[str] = None,
    ) -> schemas.User:
        """Replace a password; changing your own requires the current one."""
        check_password_strength(new_password)
        user = self._target_user(actor, user_id)
        if str(user.id) == str(actor.id):
            if not passwords.verify_password(current_password or "", user.password_hash):
                raise ValidationFailed({"user.current_password": "does not match"})
        updated = self.repo.update_user(user.id, {"password_hash": passwords.hash_password(new_password)})
        logger.info("Password changed for user %s", user.id)
        return updated

    def resolve_actor(self, token: Optional[str]) -> Optional[Actor]:
        """Verify ``token`` and reload the account so role changes apply immediately."""
        claimed = self.verify_session(token)
        if claimed is None:
            return None
        try:
            user = self.repo.get_user(claimed.id)
        except NotFound:
            return None
        return Actor.from_user(user)
