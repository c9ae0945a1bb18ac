import asyncio
import time
from typing import Any, Dict, List, Optional

from .completion import CompletionClient
from .exceptions import PermanentError, RetryableError
from .language import LanguageClient
from .logging import hash_preview, jlog
from .phrasing import compose_system_prompt
from .prompt import DEFAULT_NOTE_PROMPT
from .redactor import compute_masked_text
from .schemas import AnonymizeResponse, NoteRequest, NoteResponse, RedactionPolicy


async def _supplementary_entities(
    client: LanguageClient,
    text: str,
    language: str,
    request_id: str,
    correlation_id: Optional[str],
) -> Optional[List[Dict[str, Any]]]:
    # Best effort: a failed NER pass never fails the request
    try:
        return await client.recognize_entities(text, language, correlation_id=correlation_id)
    except (RetryableError, PermanentError) as e:
        jlog(
            event="ner_failed_continuing",
            severity="WARNING",
            request_id=request_id,
            correlation_id=correlation_id,
            status=e.status,
            error=str(e),
        )
        return None


async def anonymize(
    text: str,
    language: str,
    policy: RedactionPolicy,
    client: LanguageClient,
    request_id: str,
    correlation_id: Optional[str] = None,
) -> AnonymizeResponse:
    t0 = time.time()
    jlog(
        event="anonymize_start",
        request_id=request_id,
        correlation_id=correlation_id,
        language=language,
        text=hash_preview(text),
    )

    # Both passes go out together; the PII pass is the only one allowed to fail the request
    pii_call = client.recognize_pii(text, language, correlation_id=correlation_id)
    if policy.redact_locations_and_orgs:
        pii_entities, ner_entities = await asyncio.gather(
            pii_call,
            _supplementary_entities(client, text, language, request_id, correlation_id),
        )
    else:
        pii_entities, ner_entities = await pii_call, None

    result = compute_masked_text(text, pii_entities, policy, ner_entities)
    took_ms = int((time.time() - t0) * 1000)

    jlog(
        event="anonymize_ok",
        request_id=request_id,
        correlation_id=correlation_id,
        took_ms=took_ms,
        pii_entities=len(pii_entities),
        ner_entities=None if ner_entities is None else len(ner_entities),
        masked_spans=result.masked_spans,
        keep_dates=policy.keep_dates,
        redact_locations_and_orgs=policy.redact_locations_and_orgs,
        allow_names_count=len(policy.allow_names),
    )
    return AnonymizeResponse(
        request_id=request_id,
        took_ms=took_ms,
        redacted_text=result.redacted_text,
        entities=result.entities,
    )


def generate_note(
    req: NoteRequest,
    client: CompletionClient,
    request_id: str,
    correlation_id: Optional[str] = None,
) -> NoteResponse:
    if not req.transcript or not req.transcript.strip():
        raise PermanentError("Missing transcript", status=400)

    t0 = time.time()
    model = client.resolve_model(req.model)
    try:
        system_prompt = compose_system_prompt(
            req.system_prompt if req.system_prompt is not None else DEFAULT_NOTE_PROMPT,
            tone=req.tone,
            style=req.style,
        )
    except ValueError as e:
        raise PermanentError(str(e), status=422) from e

    result = client.complete(
        system_prompt,
        req.transcript,
        model,
        temperature=req.temperature,
        top_p=req.top_p,
        correlation_id=correlation_id,
    )
    took_ms = int((time.time() - t0) * 1000)
    jlog(
        event="note_ok",
        request_id=request_id,
        correlation_id=correlation_id,
        model_name=result.model,
        took_ms=took_ms,
        transcript=hash_preview(req.transcript),
        out_len=len(result.content),
    )
    return NoteResponse(
        request_id=request_id,
        took_ms=took_ms,
        content=result.content,
        model=result.model,
        usage=result.usage,
    )
