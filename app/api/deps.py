"""
Shared API dependencies
"""
from fastapi import Header, HTTPException, Request
from typing import Optional
from uuid import UUID


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Authenticated user id, set by the gateway")
) -> UUID:
    """
    Resolve the caller's id

    Authentication happens upstream; the gateway forwards the verified user
    id in the ``X-User-Id`` header.
    """
    try:
        user_id = UUID(x_user_id) if x_user_id else None
    except ValueError:
        user_id = None

    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id header")

    request.state.user_id = user_id
    return user_id
