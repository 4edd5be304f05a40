"""In-memory stand-in for the Firestore client used by the DAO layer.

Only the calls the application makes are supported: collection and
document references, ``where(filter=FieldFilter(...))`` with the operators
the DAO uses, ``limit``, ``stream``, batches and ``set(merge=True)``.
Every executed query is recorded in ``FakeFirestore.queries``.
"""

import copy
import itertools

from google.api_core.exceptions import NotFound
from firebase_admin import firestore

_ids = itertools.count(1)


def _apply_update(data, changes):
    for key, value in changes.items():
        if value is firestore.DELETE_FIELD:
            data.pop(key, None)
        else:
            data[key] = copy.deepcopy(value)


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, db, path, doc_id):
        self._db = db
        self._path = path
        self.id = doc_id

    def _store(self):
        return self._db.store.setdefault(self._path, {})

    def get(self):
        return FakeSnapshot(self, copy.deepcopy(self._store().get(self.id)))

    def set(self, data, merge=False):
        existing = self._store().get(self.id)
        if merge and existing is not None:
            _apply_update(existing, data)
        else:
            fresh = {}
            _apply_update(fresh, data)
            self._store()[self.id] = fresh

    def update(self, data):
        existing = self._store().get(self.id)
        if existing is None:
            raise NotFound(f'No document to update: {self._path}/{self.id}')
        _apply_update(existing, data)

    def delete(self):
        self._store().pop(self.id, None)

    def collection(self, name):
        return FakeCollectionReference(self._db, f'{self._path}/{self.id}/{name}')


class FakeQuery:
    def __init__(self, db, path, filters=(), limit=None):
        self._db = db
        self._path = path
        self._filters = list(filters)
        self._limit = limit

    def where(self, filter=None):
        return FakeQuery(self._db, self._path,
                         self._filters + [(filter.field_path, filter.op_string, filter.value)],
                         self._limit)

    def limit(self, count):
        return FakeQuery(self._db, self._path, self._filters, count)

    def _matches(self, doc_id, data):
        for field, op, value in self._filters:
            if field == '__name__':
                ids = [getattr(v, 'id', v) for v in value]
                if op != 'in' or doc_id not in ids:
                    return False
                continue
            actual = data.get(field)
            if op == '==':
                ok = field in data and actual == value
            elif op == 'in':
                ok = field in data and actual in value
            elif op == 'array_contains':
                ok = value in (actual or [])
            elif op == 'array_contains_any':
                ok = any(v in (actual or []) for v in value)
            else:
                raise NotImplementedError(op)
            if not ok:
                return False
        return True

    def stream(self):
        self._db.queries.append((self._path, list(self._filters)))
        store = self._db.store.get(self._path, {})
        results = []
        for doc_id, data in list(store.items()):
            if self._matches(doc_id, data):
                ref = FakeDocumentReference(self._db, self._path, doc_id)
                results.append(FakeSnapshot(ref, copy.deepcopy(data)))
        if self._limit is not None:
            results = results[:self._limit]
        return iter(results)

    def get(self):
        return list(self.stream())


class FakeCollectionReference(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)

    def document(self, doc_id=None):
        return FakeDocumentReference(self._db, self._path, doc_id or f'doc{next(_ids)}')

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        for op in self._ops:
            op()
        self._db.commits.append(len(self._ops))
        self._ops = []


class FakeFirestore:
    def __init__(self):
        self.store = {}
        self.queries = []
        self.commits = []

    def collection(self, name):
        return FakeCollectionReference(self, name)

    def batch(self):
        return FakeBatch(self)

    # Test helpers

    def seed(self, collection, doc_id, **data):
        self.collection(collection).document(doc_id).set(data)
        return doc_id

    def docs(self, collection):
        return copy.deepcopy(self.store.get(collection, {}))

    def doc(self, collection, doc_id):
        return copy.deepcopy(self.store.get(collection, {}).get(doc_id))


class FakeBlob:
    def __init__(self, name):
        self.name = name
        self.content_type = None
        self.data = None
        self.public = False

    def upload_from_string(self, data, content_type=None):
        self.data = data

    def upload_from_file(self, fileobj, content_type=None):
        self.data = fileobj.read()

    def make_public(self):
        self.public = True

    @property
    def public_url(self):
        return f'https://storage.googleapis.com/test-bucket/{self.name}'

    def exists(self):
        return self.data is not None

    def delete(self):
        self.data = None


class FakeBucket:
    """Storage bucket double; ``blob_class`` lets a test swap in failing blobs."""

    def __init__(self, blob_class=FakeBlob):
        self.blobs = {}
        self.blob_class = blob_class

    def blob(self, name):
        return self.blobs.setdefault(name, self.blob_class(name))
