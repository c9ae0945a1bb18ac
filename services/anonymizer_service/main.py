from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from google.cloud import firestore

from .src.routers import anonymize, note, prompts
from .src.completion import CompletionClient
from .src.config import settings
from .src.language import LanguageClient
from .src.storage import PromptStore
from .otel import init_tracing

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Shared HTTP client for the language service (PII + NER passes)
    httpx_client = httpx.AsyncClient(timeout=settings.language_timeout_s, http2=True)
    app.state.httpx_client = httpx_client
    app.state.language_client = LanguageClient(httpx_client, settings)
    app.state.completion_client = CompletionClient(settings)

    db = firestore.Client(project=settings.project_id) if settings.project_id else firestore.Client()
    app.state.prompt_store = PromptStore(db, settings.prompts_collection)
    try:
        yield
    finally:
        app.state.completion_client.close()
        db.close()
        await httpx_client.aclose()

app = FastAPI(title="Anonymizer Service API", version="1.0.0", lifespan=lifespan)

# Routers
app.include_router(anonymize.router, prefix="/api/v1")
app.include_router(note.router, prefix="/api/v1")
app.include_router(prompts.router, prefix="/api/v1")

tracer = init_tracing(app, settings)

@app.get("/health")
def health():
    return {"status": "ok", "service": settings.service_name}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
