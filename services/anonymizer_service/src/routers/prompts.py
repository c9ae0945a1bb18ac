from typing import Optional

from anyio import to_thread
from fastapi import APIRouter, Depends, HTTPException, status

from ..deps import get_prompt_store
from ..logging import jlog
from ..schemas import Prompt, PromptActivate, PromptCreate, PromptDelete, PromptUpdate
from ..storage import PromptStore

router = APIRouter(prefix="/prompts")

@router.get(
    "",
    response_model=Prompt,
    summary="Fetch the active prompt for a keyword and type",
)
async def get_prompt(
    keyword: Optional[str] = None,
    type: Optional[str] = None,
    store: PromptStore = Depends(get_prompt_store),
) -> Prompt:
    if not keyword or not type:
        raise HTTPException(status_code=400, detail="Both 'keyword' and 'type' parameters are required")
    prompt = await to_thread.run_sync(store.get_active, keyword, type)
    if prompt is None:
        raise HTTPException(status_code=404, detail="No active prompt found for the given keyword and type")
    return prompt

@router.post("", summary="Add a prompt (inactive)", status_code=status.HTTP_201_CREATED)
async def create_prompt(
    payload: PromptCreate,
    store: PromptStore = Depends(get_prompt_store),
) -> dict:
    if not (payload.type and payload.keyword and payload.content):
        raise HTTPException(status_code=400, detail="Type, Keyword, and Content are required")
    prompt_id = await to_thread.run_sync(store.create, payload.type, payload.keyword, payload.content)
    jlog(event="prompt_created", prompt_id=prompt_id, type=payload.type, keyword=payload.keyword)
    return {"message": "Prompt added", "id": prompt_id}

@router.patch("", summary="Mark a prompt as the active one for its type")
async def activate_prompt(
    payload: PromptActivate,
    store: PromptStore = Depends(get_prompt_store),
) -> dict:
    if not payload.id:
        raise HTTPException(status_code=400, detail="Invalid or missing ID")
    found = await to_thread.run_sync(store.activate, payload.id, payload.type or None)
    if not found:
        raise HTTPException(status_code=404, detail="Prompt not found")
    jlog(event="prompt_activated", prompt_id=payload.id, type=payload.type)
    return {"message": "Prompt marked as active", "id": payload.id}

@router.put("", summary="Update a prompt")
async def update_prompt(
    payload: PromptUpdate,
    store: PromptStore = Depends(get_prompt_store),
) -> dict:
    if not payload.id:
        raise HTTPException(status_code=400, detail="ID is required for update")
    fields = {
        "type": payload.type,
        "keyword": payload.keyword,
        "content": payload.content,
        "active": payload.is_active,
    }
    found = await to_thread.run_sync(store.update, payload.id, fields)
    if not found:
        raise HTTPException(status_code=404, detail="Prompt not found")
    return {"message": "Prompt updated successfully", "id": payload.id}

@router.delete("", summary="Delete a prompt")
async def delete_prompt(
    payload: PromptDelete,
    store: PromptStore = Depends(get_prompt_store),
) -> dict:
    if not payload.id:
        raise HTTPException(status_code=400, detail="Invalid or missing ID")
    found = await to_thread.run_sync(store.delete, payload.id)
    if not found:
        raise HTTPException(status_code=404, detail="Prompt not found")
    jlog(event="prompt_deleted", prompt_id=payload.id)
    return {"message": "Prompt deleted", "id": payload.id}
