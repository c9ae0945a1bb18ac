from datetime import datetime, timezone
from typing import Any, Dict, Optional

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .schemas import Prompt

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _to_prompt(doc: Any) -> Prompt:
    data = doc.to_dict() or {}
    return Prompt(
        id=doc.id,
        type=data.get("type", ""),
        keyword=data.get("keyword", ""),
        content=data.get("content", ""),
        is_active=bool(data.get("active", False)),
        created_at=data.get("createdAt"),
        updated_at=data.get("updatedAt"),
    )

class PromptStore:
    """
    Prompt templates kept in a Firestore collection.

    Document shape:
        'type': prompt family (e.g. "system")
        'keyword': lookup key chosen by the UI
        'content': the prompt text
        'active': at most one active prompt per type
        'createdAt' / 'updatedAt': timestamps
    """

    def __init__(self, db: firestore.Client, collection: str):
        self._db = db
        self._collection = collection

    @property
    def collection(self):
        return self._db.collection(self._collection)

    def get_active(self, keyword: str, type: str) -> Optional[Prompt]:
        query = (
            self.collection
            .where(filter=FieldFilter("keyword", "==", keyword))
            .where(filter=FieldFilter("type", "==", type))
            .where(filter=FieldFilter("active", "==", True))
            .limit(1)
        )
        for doc in query.stream():
            return _to_prompt(doc)
        return None

    def create(self, type: str, keyword: str, content: str) -> str:
        now = _utcnow()
        ref = self.collection.document()
        ref.set({
            "type": type,
            "keyword": keyword,
            "content": content,
            "active": False,
            "createdAt": now,
            "updatedAt": now,
        })
        return ref.id

    def activate(self, prompt_id: str, type: Optional[str] = None) -> bool:
        target = self.collection.document(prompt_id)
        snapshot = target.get()
        if not snapshot.exists:
            return False
        # The stored type wins so a stale or missing type cannot leave two prompts active
        type = (snapshot.to_dict() or {}).get("type") or type
        batch = self._db.batch()
        # Deactivate every prompt of the same type, then activate the selected one
        for doc in self.collection.where(filter=FieldFilter("type", "==", type)).stream():
            batch.update(doc.reference, {"active": False})
        batch.update(target, {"active": True, "updatedAt": _utcnow()})
        batch.commit()
        return True

    def update(self, prompt_id: str, fields: Dict[str, Any]) -> bool:
        ref = self.collection.document(prompt_id)
        if not ref.get().exists:
            return False
        changes = {k: v for k, v in fields.items() if v is not None}
        changes["updatedAt"] = _utcnow()
        ref.update(changes)
        return True

    def delete(self, prompt_id: str) -> bool:
        ref = self.collection.document(prompt_id)
        if not ref.get().exists:
            return False
        ref.delete()
        return True
