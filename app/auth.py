"""
Request identity.

Authentication happens upstream; by the time a request reaches this service
the gateway has verified the caller and forwards their user ID in the
``X-User-Id`` header.
"""

import logging
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


async def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """User ID forwarded by the auth gateway"""
    if not x_user_id or not x_user_id.strip():
        logger.warning("⚠️ Request without X-User-Id header")
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()
