from fastapi import Depends
import structlog

from pharmacy_api.middleware.auth import get_current_user


async def get_pharmacy_id(current_user: dict = Depends(get_current_user)) -> str:
    """FastAPI dependency: pharmacy scope of the authenticated user."""
    pharmacy_id = str(current_user["pharmacy_id"])
    structlog.contextvars.bind_contextvars(pharmacy_id=pharmacy_id)
    return pharmacy_id
