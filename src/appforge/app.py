# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from appforge.auth.sessions import CredentialSessionManager, InvalidCredentialsError, SessionData, UserExistsError
from appforge.config import Settings, build_manager, load_settings
from appforge.permissions import bearer_token, get_manager, load_user_from_request, require_user

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Credentials(BaseModel):
    email: str = ""
    password: str = ""


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _validate_credentials(body: Credentials, min_len: int) -> Optional[JSONResponse]:
    email = body.email.strip()
    if not email or not body.password:
        return _error(400, "Email y contraseña son obligatorios.")
    if not EMAIL_RE.match(email):
        return _error(400, "Email no válido.")
    if len(body.password) < min_len:
        return _error(400, f"La contraseña debe tener al menos {min_len} caracteres.")
    return None


def _auth_response(token: str, user) -> dict:
    return {"token": token, "user": {"id": user.id, "email": user.email}}


def create_app(
    manager: Optional[CredentialSessionManager] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the application; the manager is built from settings at startup if not given."""
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.auth is None:
            app.state.auth = build_manager(settings)
        yield

    app = FastAPI(lifespan=lifespan)
    app.state.auth = manager
    app.state.settings = settings

    @app.middleware("http")
    async def _auth_middleware(request: Request, call_next):
        request.state.user = await load_user_from_request(request)
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        resp = _error(exc.status_code, str(exc.detail))
        for k, v in (exc.headers or {}).items():
            resp.headers[k] = v
        return resp

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return _error(400, "Petición no válida.")

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/api/auth/signup")
    async def signup(body: Credentials, request: Request):
        bad = _validate_credentials(body, settings.min_password_length)
        if bad:
            return bad
        try:
            token, user = await get_manager(request).signup(body.email, body.password)
        except UserExistsError:
            return _error(409, "Ya existe una cuenta con ese email.")
        return _auth_response(token, user)

    @app.post("/api/auth/login")
    async def login(body: Credentials, request: Request):
        if not body.email.strip() or not body.password:
            return _error(400, "Email y contraseña son obligatorios.")
        try:
            token, user = await get_manager(request).login(body.email, body.password)
        except InvalidCredentialsError:
            return _error(401, "Email o contraseña incorrectos.")
        return _auth_response(token, user)

    @app.post("/api/auth/logout")
    async def logout(request: Request):
        token = bearer_token(request)
        if token:
            await get_manager(request).logout(token)
        return {"ok": True}

    @app.get("/api/auth/me")
    def me(user: SessionData = Depends(require_user)):
        return {"id": user.user_id, "email": user.email}

    return app


app = create_app()
