import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status

from ..deps import get_language_client
from ..exceptions import PermanentError, RetryableError, ServiceError
from ..language import LanguageClient
from ..logging import jlog
from ..schemas import AnonymizeRequest, AnonymizeResponse
from ..service import anonymize

router = APIRouter()

def error_status(e: ServiceError) -> int:
    if isinstance(e, RetryableError):
        return 503
    # Relay upstream client errors as-is so the UI sees the provider's status
    if e.status and 400 <= e.status < 500:
        return e.status
    return 422

def error_detail(e: ServiceError, request_id: str) -> Dict[str, Any]:
    return {
        "error": str(e),
        "status": e.status,
        "requestId": request_id,
        "providerError": e.payload,
    }

@router.post(
    "/anonymize",
    response_model=AnonymizeResponse,
    summary="Mask PII in a transcript",
    description="Detect PII (and optionally locations/organizations) and mask it in place with '*'.",
    status_code=status.HTTP_200_OK,
)
async def anonymize_text(
    payload: AnonymizeRequest,
    client: LanguageClient = Depends(get_language_client),
    x_correlation_id: Optional[str] = Header(default=None),
) -> AnonymizeResponse:
    request_id = str(uuid.uuid4())
    if not payload.text:
        jlog(event="anonymize_rejected", severity="WARNING", request_id=request_id, reason="missing_text")
        raise HTTPException(status_code=400, detail={"error": "Missing text", "requestId": request_id})

    try:
        return await anonymize(
            payload.text,
            payload.language,
            payload,
            client,
            request_id=request_id,
            correlation_id=x_correlation_id,
        )
    except (RetryableError, PermanentError) as e:
        jlog(
            event="anonymize_failed",
            severity="ERROR",
            retryable=isinstance(e, RetryableError),
            status=e.status,
            error=str(e),
            request_id=request_id,
            correlation_id=x_correlation_id,
        )
        raise HTTPException(status_code=error_status(e), detail=error_detail(e, request_id))
