from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    service_name: str = "anonymizer-service"
    environment: str = "local"
    use_cloud_trace: bool = False
    trace_console: bool = False

    # Azure AI Language (PII + NER)
    azure_language_endpoint: Optional[str] = None
    azure_language_key: Optional[str] = None
    azure_language_api_version: str = "2022-05-01"
    language_timeout_s: float = 30.0
    language_max_retries: int = 2
    language_retry_budget_s: float = 20.0
    language_backoff_base_ms: int = 200
    language_backoff_cap_ms: int = 3000

    # LLM
    llm_provider: str = "openai"  # "openai" | "azure"
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_deployment: Optional[str] = None
    azure_openai_api_version: str = "2024-08-01-preview"
    note_model: str = "gpt-4o"
    supported_models: List[str] = ["gpt-4", "gpt-4.1", "gpt-4o", "gpt-5", "gpt-5-mini"]
    fixed_sampling_models: List[str] = ["gpt-5", "gpt-5-mini"]
    note_default_temperature: float = 0.2
    note_timeout_s: float = 120.0
    note_max_tokens: Optional[int] = None

    # Prompt store
    project_id: Optional[str] = None
    prompts_collection: str = "prompts"

settings = Settings() # type: ignore
