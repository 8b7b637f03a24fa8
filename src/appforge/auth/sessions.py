# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential & session manager.

Owns password credentials and bearer tokens and mediates the ``user:`` and
``session:`` collections of a key-value store. The store and the signing
secret are injected; nothing here reads the environment.

Live authorization is the store lookup in :meth:`resolve_session`; it does not
re-check the signature, so rotating the secret leaves live sessions intact.
Tokens are still signed at issuance and can be checked offline with
:meth:`verify_token`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from starlette.concurrency import run_in_threadpool

from appforge.auth import passwords, tokens
from appforge.auth.tokens import TokenClaims
from appforge.auth.users import UserRecord, dump_user, load_user, new_user, normalize_email, user_key
from appforge.infra.kv_store import KVStore

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"
DEFAULT_SESSION_TTL_SECONDS = 7 * 24 * 60 * 60


class AuthError(Exception):
    """Base class for authentication outcomes surfaced to the route layer."""


class UserExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    """Wrong password or unknown email; deliberately indistinguishable."""


@dataclass(frozen=True)
class SessionData:
    user_id: str
    email: str


def session_key(token: str) -> str:
    return SESSION_KEY_PREFIX + token


class CredentialSessionManager:
    def __init__(
        self,
        store: KVStore,
        secret: str,
        *,
        session_ttl: int = DEFAULT_SESSION_TTL_SECONDS,
        iterations: int = passwords.ITERATIONS,
    ) -> None:
        if not secret:
            raise RuntimeError("Falta el secreto de firma de sesiones")
        if session_ttl <= 0:
            raise ValueError("session_ttl debe ser positivo")
        self.store = store
        self._secret = secret
        self.session_ttl = session_ttl
        self.iterations = iterations

    # --- credentials ---

    async def hash_password(self, plain: str) -> str:
        return await run_in_threadpool(passwords.hash_password, plain, iterations=self.iterations)

    async def verify_password(self, plain: str, credential: str) -> bool:
        return await run_in_threadpool(passwords.verify_password, plain, credential, iterations=self.iterations)

    # --- tokens ---

    def issue_token(self, user_id: str) -> str:
        return tokens.issue_token(user_id, self._secret)

    def verify_token(self, token: str) -> Optional[TokenClaims]:
        return tokens.verify_token(token, self._secret)

    # --- users ---

    async def get_user(self, email: str) -> Optional[UserRecord]:
        email = normalize_email(email)
        if not email:
            return None
        return load_user(await self.store.get(user_key(email)))

    async def create_user(self, email: str, password: str) -> UserRecord:
        """Persist a new user; raises UserExistsError if the email is taken."""
        user = new_user(email, await self.hash_password(password))
        created = await self.store.put_if_absent(user_key(user.email), dump_user(user))
        if not created:
            raise UserExistsError(user.email)
        logger.info("Created user %s", user.id)
        return user

    async def authenticate(self, email: str, password: str) -> UserRecord:
        user = await self.get_user(email)
        if user is None:
            # Same KDF cost as a real check, so unknown emails are not faster.
            await self.verify_password(password, _DUMMY_CREDENTIAL)
            raise InvalidCredentialsError()
        if not await self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    # --- sessions ---

    async def open_session(self, user: UserRecord) -> str:
        token = self.issue_token(user.id)
        payload = json.dumps({"userId": user.id, "email": user.email})
        await self.store.put(session_key(token), payload, ttl=self.session_ttl)
        return token

    async def resolve_session(self, token: str) -> Optional[SessionData]:
        if not token:
            return None
        raw = await self.store.get(session_key(token))
        if not raw:
            return None
        data = json.loads(raw)
        if not isinstance(data, dict):
            return None
        uid = str(data.get("userId") or "").strip()
        if not uid:
            return None
        return SessionData(user_id=uid, email=str(data.get("email") or ""))

    async def revoke_session(self, token: str) -> None:
        if not token:
            return
        await self.store.delete(session_key(token))

    # --- flows used by the routes ---

    async def signup(self, email: str, password: str) -> Tuple[str, UserRecord]:
        user = await self.create_user(email, password)
        return await self.open_session(user), user

    async def login(self, email: str, password: str) -> Tuple[str, UserRecord]:
        try:
            user = await self.authenticate(email, password)
        except InvalidCredentialsError:
            logger.warning("Failed login for %s", normalize_email(email))
            raise
        token = await self.open_session(user)
        logger.info("User %s logged in", user.id)
        return token, user

    async def logout(self, token: str) -> None:
        sess = await self.resolve_session(token)
        await self.revoke_session(token)
        if sess:
            logger.info("User %s logged out", sess.user_id)


_DUMMY_CREDENTIAL = passwords.hash_password("appforge-dummy", iterations=1)
