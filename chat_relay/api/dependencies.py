"""
FastAPI dependencies for service readiness.
"""

from fastapi import HTTPException, status

from chat_relay.services.gateway import IMessageStore
from chat_relay.services.relay import relay_service


async def get_store() -> IMessageStore:
    """
    Dependency that checks if the relay is initialized.
    Returns the active message store.
    """
    if not relay_service.is_initialized() or not relay_service.store:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage not ready.")
    return relay_service.store
