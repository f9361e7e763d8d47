"""
Chat API Router

Question answering over the owner's journal notes.

Endpoints:
    POST /chat — Answer a question and return the cited notes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from journal.api.deps import get_resources
from journal.core.errors import BackendError, StoreError
from journal.core.resources import Resources
from journal.schemas.chat import ChatRequest, ChatResponse
from journal.schemas.notes import NoteRead

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ChatResponse,
    summary="Ask a question about the journal",
    responses={
        502: {"description": "Completion backend failed"},
        503: {"description": "Note store unavailable"},
    },
)
async def chat(
    request: ChatRequest,
    resources: Resources = Depends(get_resources),
) -> ChatResponse:
    """
    Answer a question using the owner's notes as context.

    Process:
        1. Embed the question (skipped context if the embedder is down).
        2. Retrieve the nearest notes via pgvector.
        3. Generate an answer with Ollama and keep the notes it cited.
    """
    logger.info("Chat request (%d chars)", len(request.message))

    try:
        answer = await resources.orchestrator.answer(
            request.message,
            resources.settings.OWNER_ID,
        )
    except BackendError as e:
        # 502 Bad Gateway: upstream model failure
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"AI Service Error: {e}",
        ) from e
    except StoreError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Note store unavailable: {e}",
        ) from e

    return ChatResponse(
        response=answer.text,
        source_entries=[NoteRead.model_validate(n) for n in answer.cited_notes],
        message_id=answer.answer_id,
    )
