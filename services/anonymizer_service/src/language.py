"""
Client for the Azure AI Language `analyze-text` API.

Two passes are used by the anonymizer:
  - PiiEntityRecognition: every PII category the service knows about
  - EntityRecognition: general NER, used to recover locations and organizations
Offsets are requested as UTF-16 code units to match the redactor.
"""
import json
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_random_exponential,
)

from .config import Settings
from .exceptions import PermanentError, RetryableError
from .logging import jlog

PII_KIND = "PiiEntityRecognition"
NER_KIND = "EntityRecognition"
STRING_INDEX_TYPE = "Utf16CodeUnit"


def _parse_body(resp: httpx.Response) -> Any:
    raw = resp.text
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw[:2048]


def _error_message(kind: str, status: int, body: Any) -> str:
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if body.get("message"):
            return str(body["message"])
    return f"Azure Language {kind} error (status {status})"


class LanguageClient:
    """Thin async wrapper around one shared httpx client."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        self._http = http
        self._settings = settings

    @property
    def url(self) -> str:
        endpoint = (self._settings.azure_language_endpoint or "").rstrip("/")
        return f"{endpoint}/language/:analyze-text?api-version={self._settings.azure_language_api_version}"

    async def recognize_pii(
        self,
        text: str,
        language: str = "en",
        categories: Optional[List[str]] = None,
        correlation_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        parameters: Dict[str, Any] = {}
        if categories:
            parameters["piiCategories"] = list(categories)
        return await self._analyze(PII_KIND, text, language, parameters, correlation_id)

    async def recognize_entities(
        self,
        text: str,
        language: str = "en",
        correlation_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._analyze(NER_KIND, text, language, {}, correlation_id)

    async def _analyze(
        self,
        kind: str,
        text: str,
        language: str,
        extra_parameters: Dict[str, Any],
        correlation_id: Optional[str],
    ) -> List[Dict[str, Any]]:
        if not (self._settings.azure_language_endpoint and self._settings.azure_language_key):
            raise PermanentError("Missing AZURE_LANGUAGE_ENDPOINT or AZURE_LANGUAGE_KEY")

        payload = {
            "kind": kind,
            "parameters": {"modelVersion": "latest", "stringIndexType": STRING_INDEX_TYPE, **extra_parameters},
            "analysisInput": {"documents": [{"id": "1", "language": language, "text": text}]},
        }
        headers = {
            "Content-Type": "application/json",
            "Ocp-Apim-Subscription-Key": self._settings.azure_language_key,
        }

        def _before_sleep_log(retry_state):
            sleep_s = getattr(getattr(retry_state, "next_action", None), "sleep", None)
            err = None
            if retry_state.outcome and retry_state.outcome.failed:
                err = str(retry_state.outcome.exception())
            jlog(
                event="language_retry",
                kind=kind,
                attempt=retry_state.attempt_number,
                wait_s=sleep_s,
                error=err,
                correlation_id=correlation_id,
            )

        s = self._settings
        backoff_base_s = max(0.01, s.language_backoff_base_ms / 1000.0)
        backoff_cap_s = max(backoff_base_s, s.language_backoff_cap_ms / 1000.0)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(RetryableError),
            stop=(stop_after_attempt(max(1, s.language_max_retries + 1)) | stop_after_delay(s.language_retry_budget_s)),
            wait=wait_random_exponential(multiplier=backoff_base_s, max=backoff_cap_s),
            reraise=True,
            before_sleep=_before_sleep_log,
        ):
            with attempt:
                try:
                    resp = await self._http.post(
                        self.url, json=payload, headers=headers, timeout=s.language_timeout_s
                    )
                except httpx.RequestError as e:
                    raise RetryableError(f"Azure Language {kind} network: {e}") from e

                body = _parse_body(resp)
                sc = resp.status_code
                if sc >= 500 or sc == 429:
                    raise RetryableError(_error_message(kind, sc, body), status=sc, payload=body)
                if sc >= 400:
                    raise PermanentError(_error_message(kind, sc, body), status=sc, payload=body)

                return _document_entities(kind, body)

        return []  # unreachable: AsyncRetrying either returns or reraises


def _document_entities(kind: str, body: Any) -> List[Dict[str, Any]]:
    if not isinstance(body, dict):
        raise PermanentError(f"Azure Language {kind}: non-JSON response", payload=body)
    results = body.get("results") or {}
    if not isinstance(results, dict):
        raise PermanentError(f"Azure Language {kind}: unexpected results shape", payload=body)
    doc_errors = results.get("errors") or []
    if doc_errors:
        raise PermanentError(f"Azure Language {kind}: document error", payload=doc_errors)
    documents = results.get("documents") or []
    if not isinstance(documents, list):
        raise PermanentError(f"Azure Language {kind}: unexpected documents shape", payload=body)
    if not documents:
        return []
    document = documents[0]
    if not isinstance(document, dict):
        raise PermanentError(f"Azure Language {kind}: unexpected document shape", payload=body)
    entities = document.get("entities")
    return entities if isinstance(entities, list) else []
