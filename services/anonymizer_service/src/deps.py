from fastapi import Request

from .completion import CompletionClient
from .language import LanguageClient
from .storage import PromptStore

# Clients are built once in the app lifespan and read from app.state per request.

def get_language_client(request: Request) -> LanguageClient:
    return request.app.state.language_client

def get_completion_client(request: Request) -> CompletionClient:
    return request.app.state.completion_client

def get_prompt_store(request: Request) -> PromptStore:
    return request.app.state.prompt_store
