import logging
import time
from typing import Any, Dict, List, Optional

from openai import APIConnectionError, APIError, APITimeoutError, AzureOpenAI, OpenAI, RateLimitError
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Settings
from .exceptions import PermanentError, RetryableError
from .logging import jlog
from .schemas import CompletionResult, TokenUsage

retry_logger = logging.getLogger("tenacity")

EMPTY_USER_PROMPT = "(empty user prompt)"


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def build_messages(system_prompt: Optional[str], user_prompt: Optional[str]) -> List[Dict[str, str]]:
    messages: List[Dict[str, str]] = []
    system = (system_prompt or "").strip()
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": (user_prompt or "").strip() or EMPTY_USER_PROMPT})
    return messages


def build_sampling_params(
    model: str,
    temperature: Optional[float],
    top_p: Optional[float],
    fixed_models: List[str],
    default_temperature: Optional[float] = None,
) -> Dict[str, float]:
    """Sampling knobs the model accepts; fixed-sampling models get none at all."""
    if model in fixed_models:
        return {}
    params: Dict[str, float] = {}
    if temperature is None:
        temperature = default_temperature
    if temperature is not None:
        params["temperature"] = _clamp(float(temperature), 0.0, 2.0)
    if top_p is not None:
        params["top_p"] = _clamp(float(top_p), 0.0, 1.0)
    return params


def messages_summary(messages: List[Dict[str, str]]) -> List[Dict[str, Any]]:
    # Shape only; message content never leaves the process in diagnostics
    return [{"index": i, "role": m["role"], "length": len(m["content"])} for i, m in enumerate(messages)]


class CompletionClient:
    """Chat-completions client for OpenAI or an Azure OpenAI deployment."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self._settings = settings
        self._client = client

    @property
    def provider(self) -> str:
        return self._settings.llm_provider

    def _make_client(self) -> OpenAI:
        s = self._settings
        if s.llm_provider == "azure":
            if not (s.azure_openai_endpoint and s.azure_openai_api_key):
                raise PermanentError("Missing AZURE_OPENAI_ENDPOINT or AZURE_OPENAI_API_KEY")
            return AzureOpenAI(
                azure_endpoint=s.azure_openai_endpoint,
                api_key=s.azure_openai_api_key,
                api_version=s.azure_openai_api_version,
            )
        if not s.openai_api_key:
            raise PermanentError("Missing OPENAI_API_KEY")
        return OpenAI(api_key=s.openai_api_key, base_url=s.openai_base_url)

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = self._make_client()
        return self._client

    def close(self) -> None:
        # Only a client we actually built holds a connection pool
        if self._client is not None:
            self._client.close()
            self._client = None

    def resolve_model(self, requested: Optional[str]) -> str:
        s = self._settings
        model = (requested or "").strip()
        if s.llm_provider == "azure":
            # Azure routes by deployment name, not model name
            model = model or (s.azure_openai_deployment or "")
            if not model:
                raise PermanentError("Missing AZURE_OPENAI_DEPLOYMENT", status=400)
            return model
        model = model or s.note_model
        if model not in s.supported_models:
            raise PermanentError(
                f"Model '{model}' is not enabled by this service",
                status=400,
                payload={"supported": list(s.supported_models)},
            )
        return model

    # Small, bounded retries on network/server errors; permanent errors stop immediately.
    @retry(
        wait=wait_exponential(multiplier=0.5, min=1, max=8),
        stop=stop_after_attempt(2),
        retry=retry_if_exception_type(RetryableError),
        reraise=True,
        before_sleep=before_sleep_log(retry_logger, logging.WARNING),
    )
    def complete(
        self,
        system_prompt: Optional[str],
        user_prompt: Optional[str],
        model: str,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ) -> CompletionResult:
        s = self._settings
        messages = build_messages(system_prompt, user_prompt)
        sampling = build_sampling_params(
            model, temperature, top_p, s.fixed_sampling_models, s.note_default_temperature
        )
        kwargs: Dict[str, Any] = dict(model=model, messages=messages, timeout=s.note_timeout_s, **sampling)
        if s.note_max_tokens:
            kwargs["max_tokens"] = s.note_max_tokens
        payload_sent = {"model": model, **sampling, "messagesSummary": messages_summary(messages)}

        try:
            start = time.time()
            completion = self.client.chat.completions.create(**kwargs)  # type: ignore
            elapsed = time.time() - start
        except (APITimeoutError, APIConnectionError) as e:
            raise RetryableError(f"LLM timeout/conn: {e}", payload={"payloadSent": payload_sent}) from e
        except RateLimitError as e:
            raise RetryableError(f"LLM rate limit: {e}", status=429, payload={"payloadSent": payload_sent}) from e
        except APIError as e:
            status = getattr(e, "status_code", None) or 500
            diagnostics = {"payloadSent": payload_sent, "parsedError": getattr(e, "body", None)}
            if status >= 500:
                raise RetryableError(f"LLM server error: {e}", status=status, payload=diagnostics) from e
            raise PermanentError(f"LLM API error: {e}", status=status, payload=diagnostics) from e

        choice = completion.choices[0] if completion.choices else None
        content = ((choice.message.content if choice else None) or "").strip()

        usage = getattr(completion, "usage", None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", None),
            completion_tokens=getattr(usage, "completion_tokens", None),
            total_tokens=getattr(usage, "total_tokens", None),
        ) if usage else None

        jlog(
            event="note_llm_ok",
            step="note",
            correlation_id=correlation_id,
            provider=s.llm_provider,
            model_name=model,
            latency_ms=int(elapsed * 1000),
            prompt_tokens=token_usage.prompt_tokens if token_usage else None,
            completion_tokens=token_usage.completion_tokens if token_usage else None,
            total_tokens=token_usage.total_tokens if token_usage else None,
        )
        return CompletionResult(
            content=content,
            model=getattr(completion, "model", None) or model,
            usage=token_usage,
            latency_ms=int(elapsed * 1000),
        )
