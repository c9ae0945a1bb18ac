import pytest

from services.anonymizer_service.src.storage import PromptStore


@pytest.fixture
def store(firestore_db):
    return PromptStore(firestore_db, "prompts")


def _docs(firestore_db):
    return firestore_db.collection("prompts").docs


def _active(firestore_db, type):
    return sorted(i for i, d in _docs(firestore_db).items() if d["type"] == type and d["active"])


def test_create_is_inactive_with_timestamps(store, firestore_db):
    prompt_id = store.create("system", "note", "Write a note.")
    doc = _docs(firestore_db)[prompt_id]
    assert doc["active"] is False
    assert doc["createdAt"] == doc["updatedAt"]


def test_activate_leaves_one_active_prompt_per_type(store, firestore_db):
    a = store.create("system", "note", "A")
    b = store.create("system", "note", "B")
    other = store.create("user", "note", "C")

    assert store.activate(other, "user")
    assert store.activate(a, "system")
    assert store.activate(b, "system")

    assert _active(firestore_db, "system") == [b]
    assert _active(firestore_db, "user") == [other]
    assert firestore_db.batches[-1].committed


def test_activate_without_type_uses_stored_type(store, firestore_db):
    a = store.create("system", "note", "A")
    b = store.create("system", "note", "B")
    store.activate(a, "system")

    assert store.activate(b)

    assert _active(firestore_db, "system") == [b]


def test_activate_with_wrong_type_uses_stored_type(store, firestore_db):
    a = store.create("system", "note", "A")
    b = store.create("system", "note", "B")
    store.activate(a, "system")

    store.activate(b, "")

    assert _active(firestore_db, "system") == [b]


def test_activate_missing_prompt(store, firestore_db):
    assert store.activate("missing", "system") is False
    assert firestore_db.batches == []


def test_get_active(store):
    prompt_id = store.create("system", "note", "Write a note.")
    assert store.get_active("note", "system") is None

    store.activate(prompt_id)
    prompt = store.get_active("note", "system")

    assert prompt.id == prompt_id
    assert prompt.content == "Write a note."
    assert prompt.is_active is True
    assert store.get_active("note", "user") is None


def test_update_ignores_unset_fields(store, firestore_db):
    prompt_id = store.create("system", "note", "Old")
    assert store.update(prompt_id, {"content": "New", "keyword": None})

    doc = _docs(firestore_db)[prompt_id]
    assert doc["content"] == "New"
    assert doc["keyword"] == "note"
    assert doc["updatedAt"] >= doc["createdAt"]
    assert store.update("missing", {"content": "x"}) is False


def test_delete(store, firestore_db):
    prompt_id = store.create("system", "note", "x")
    assert store.delete(prompt_id)
    assert _docs(firestore_db) == {}
    assert store.delete(prompt_id) is False
