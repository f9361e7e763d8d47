"""
Config API Router

POST /reload — re-read settings from the environment and swap in a new
resource bundle. On any failure the running configuration is kept.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from journal.api.deps import get_holder
from journal.core.errors import BackendError, ConfigurationError, StoreError
from journal.core.resources import ResourceHolder
from journal.schemas.chat import ReloadResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reload", response_model=ReloadResponse)
async def reload_config(holder: ResourceHolder = Depends(get_holder)) -> ReloadResponse:
    try:
        resources = await holder.reload()
    except ConfigurationError as e:
        logger.error("Configuration reload rejected:\n%s", e)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Invalid configuration", "issues": e.issues},
        ) from e
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Note store unavailable: {e}",
        ) from e
    except BackendError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"AI Service Error: {e}",
        ) from e

    settings = resources.settings
    return ReloadResponse(
        store_backend=settings.STORE_BACKEND,
        embedding_model=settings.EMBEDDING_MODEL,
        chat_model=settings.CHAT_MODEL,
        vector_search_enabled=settings.ENABLE_VECTOR_SEARCH,
    )
