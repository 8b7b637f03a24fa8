#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from appforge.auth.sessions import UserExistsError
from appforge.config import build_manager, load_settings


def main() -> None:
    settings = load_settings()
    if not settings.store_path:
        raise SystemExit("Define FORGE_STORE_PATH: sin fichero de store el usuario no persistiría")
    manager = build_manager(settings)

    email = input("Email: ").strip()
    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords no coinciden")
    if len(pw1) < settings.min_password_length:
        raise SystemExit(f"La contraseña debe tener al menos {settings.min_password_length} caracteres")

    try:
        user = asyncio.run(manager.create_user(email, pw1))
    except UserExistsError:
        raise SystemExit(f"Ya existe un usuario con email {email}")
    print(f"OK -> {user.email} ({user.id}) en {settings.store_path}")


if __name__ == "__main__":
    main()
