# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from appforge.auth.sessions import CredentialSessionManager, SessionData

UNAUTHORIZED_DETAIL = "Se requiere iniciar sesión"


def bearer_token(request: Request) -> str:
    """Token from ``Authorization: Bearer <token>``, or an empty string."""
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return value.strip()


def get_manager(request: Request) -> CredentialSessionManager:
    return request.app.state.auth


async def load_user_from_request(request: Request) -> Optional[SessionData]:
    token = bearer_token(request)
    if not token:
        return None
    return await get_manager(request).resolve_session(token)


async def current_user_optional(request: Request) -> Optional[SessionData]:
    if hasattr(request.state, "user"):
        return request.state.user
    return await load_user_from_request(request)


async def require_user(request: Request) -> SessionData:
    u = await current_user_optional(request)
    if u:
        return u
    raise HTTPException(
        status_code=401,
        detail=UNAUTHORIZED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )
