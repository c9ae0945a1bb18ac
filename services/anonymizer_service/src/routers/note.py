import uuid
from typing import Optional

from anyio import to_thread
from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..completion import CompletionClient
from ..deps import get_completion_client
from ..exceptions import PermanentError, RetryableError
from ..logging import jlog
from ..schemas import NoteRequest, NoteResponse
from ..service import generate_note
from .anonymize import error_detail, error_status

router = APIRouter()

@router.post(
    "/note",
    response_model=NoteResponse,
    summary="Generate a clinical note from a redacted transcript",
    status_code=status.HTTP_200_OK,
)
async def clinical_note(
    payload: NoteRequest,
    client: CompletionClient = Depends(get_completion_client),
    x_correlation_id: Optional[str] = Header(default=None),
) -> NoteResponse:
    request_id = str(uuid.uuid4())
    try:
        # Offload to a worker thread so we don't block the event loop
        return await to_thread.run_sync(
            generate_note, payload, client, request_id, x_correlation_id
        )
    except (RetryableError, PermanentError) as e:
        jlog(
            event="note_failed",
            severity="ERROR",
            retryable=isinstance(e, RetryableError),
            status=e.status,
            error=str(e),
            request_id=request_id,
            correlation_id=x_correlation_id,
        )
        raise HTTPException(status_code=error_status(e), detail=error_detail(e, request_id))
