import itertools

import pytest


# Helper dummy classes to simulate the Firestore client surface used by PromptStore
class _Snapshot:
    def __init__(self, ref, data):
        self.id = ref.id
        self.reference = ref
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class _DocRef:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def get(self):
        return _Snapshot(self, self._collection.docs.get(self.id))

    def set(self, data):
        self._collection.docs[self.id] = dict(data)

    def update(self, changes):
        if self.id not in self._collection.docs:
            raise KeyError(self.id)
        self._collection.docs[self.id].update(changes)

    def delete(self):
        self._collection.docs.pop(self.id, None)


class _Query:
    def __init__(self, collection, filters=(), limit=None):
        self._collection = collection
        self._filters = list(filters)
        self._limit = limit

    def where(self, filter):
        assert filter.op_string == "=="
        return _Query(self._collection, self._filters + [filter], self._limit)

    def limit(self, n):
        return _Query(self._collection, self._filters, n)

    def stream(self):
        hits = [
            _Snapshot(_DocRef(self._collection, doc_id), data)
            for doc_id, data in self._collection.docs.items()
            if all(data.get(f.field_path) == f.value for f in self._filters)
        ]
        return iter(hits[: self._limit] if self._limit is not None else hits)


class _Collection(_Query):
    def __init__(self):
        self.docs = {}
        self._ids = itertools.count(1)
        super().__init__(self)

    def document(self, doc_id=None):
        return _DocRef(self, doc_id or f"p{next(self._ids)}")


class _Batch:
    def __init__(self):
        self.writes = []
        self.committed = False

    def update(self, ref, changes):
        self.writes.append((ref, changes))

    def commit(self):
        for ref, changes in self.writes:
            ref.update(changes)
        self.committed = True


class FakeFirestore:
    def __init__(self):
        self.collections = {}
        self.batches = []
        self.closed = False

    def collection(self, name):
        return self.collections.setdefault(name, _Collection())

    def batch(self):
        batch = _Batch()
        self.batches.append(batch)
        return batch

    def close(self):
        self.closed = True


@pytest.fixture
def firestore_db():
    return FakeFirestore()
