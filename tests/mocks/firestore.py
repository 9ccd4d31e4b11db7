import copy
from typing import Dict, Any, Optional, List


class MockDocumentSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = copy.deepcopy(data)

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self._data)


class MockDocumentReference:
    def __init__(self, store: 'MockFirestore', collection: str, doc_id: str):
        self._store = store
        self._collection = collection
        self.id = doc_id

    def get(self) -> MockDocumentSnapshot:
        self._store.check_reads()
        return MockDocumentSnapshot(self.id, self._store.data.get(self._collection, {}).get(self.id))

    def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        self._store.check_writes()
        self._store.writes.append((self._collection, self.id, copy.deepcopy(data), merge))
        documents = self._store.data.setdefault(self._collection, {})
        if merge and self.id in documents:
            documents[self.id].update(copy.deepcopy(data))
        else:
            documents[self.id] = copy.deepcopy(data)


class MockQuery:
    def __init__(self, store: 'MockFirestore', collection: str, filters=None, limit_count: Optional[int] = None):
        self._store = store
        self._collection = collection
        self._filters = list(filters or [])
        self._limit = limit_count

    def where(self, filter=None):
        if filter.op_string != '==':
            raise NotImplementedError(f"Unsupported operator {filter.op_string}")
        return MockQuery(self._store, self._collection, self._filters + [filter], self._limit)

    def limit(self, count: int) -> 'MockQuery':
        return MockQuery(self._store, self._collection, self._filters, count)

    def stream(self) -> List[MockDocumentSnapshot]:
        self._store.check_reads()
        results = []
        for doc_id, data in self._store.data.get(self._collection, {}).items():
            if all(data.get(f.field_path) == f.value for f in self._filters):
                results.append(MockDocumentSnapshot(doc_id, data))
        if self._limit is not None:
            results = results[:self._limit]
        return iter(results)


class MockCollectionReference(MockQuery):
    def document(self, doc_id: str) -> MockDocumentReference:
        return MockDocumentReference(self._store, self._collection, doc_id)


class MockFirestore:
    """In-memory stand-in for the Firestore client used in tests"""

    def __init__(self):
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.writes: List[tuple] = []
        self.fail_reads = False
        self.fail_writes = False

    def collection(self, name: str) -> MockCollectionReference:
        return MockCollectionReference(self, name)

    def add_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        self.data.setdefault(collection, {})[doc_id] = copy.deepcopy(data)

    def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.data.get(collection, {}).get(doc_id))

    def check_reads(self) -> None:
        if self.fail_reads:
            raise RuntimeError("Firestore unavailable")

    def check_writes(self) -> None:
        if self.fail_writes:
            raise RuntimeError("Firestore unavailable")
