# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication helpers.

This package provides:
- Password credentials (PBKDF2-HMAC-SHA256, salted)
- Signed bearer tokens (itsdangerous, HMAC-SHA256)
- User records stored under ``user:<email>``
- Store-backed sessions under ``session:<token>`` with a fixed TTL
"""
