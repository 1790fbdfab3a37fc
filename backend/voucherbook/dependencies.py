"""
Shared FastAPI dependency helpers.

`get_db` (re-exported from `voucherbook.db`) provides a SQLAlchemy session to
each request and closes it afterward. `get_current_user_id` resolves the
calling owner from the identity provider's `X-User-Id` header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from voucherbook import settings
from voucherbook.db import get_db  # noqa: F401


def get_current_user_id(
    user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Resolve the calling user. In dev (AUTH_ENFORCE=false) a missing header
    falls back to the configured dev principal.
    """
    if user_id and user_id.strip():
        return user_id.strip()
    if settings.auth_enforced():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header",
        )
    return settings.dev_user_id()
