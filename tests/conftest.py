import copy
import os
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

# Настройки читаются при создании приложения
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB_NAME", "staffdir_test")
os.environ.setdefault("HASH_SALT", "4")

from staffdir.db.user_repository import UserRepository  # noqa: E402

TEST_HASH_COST = 4


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeCursor:
    def __init__(self, documents):
        self._documents = documents

    def sort(self, key, direction=1):
        self._documents.sort(key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def skip(self, count):
        self._documents = self._documents[count:]
        return self

    def limit(self, count):
        self._documents = self._documents[:count]
        return self

    async def to_list(self, length=None):
        return list(self._documents[:length] if length else self._documents)


class FakeUsersCollection:
    """
    Коллекция в памяти с теми вызовами motor, что нужны репозиторию.
    Уникальные индексы соблюдаются так же, как в MongoDB: DuplicateKeyError
    с keyPattern/keyValue.
    """

    name = "users"

    def __init__(self):
        self.documents = []
        self.unique_fields = {}

    async def create_indexes(self, indexes):
        for index in indexes:
            spec = index.document
            if spec.get("unique"):
                field = next(iter(spec["key"]))
                self.unique_fields[field] = spec["name"]
        return [index.document["name"] for index in indexes]

    def _check_unique(self, document, exclude_id=None):
        for field, index_name in self.unique_fields.items():
            value = document.get(field)
            if not isinstance(value, str):
                continue
            for other in self.documents:
                if other["_id"] != exclude_id and other.get(field) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: test.users index: {index_name} "
                        f"dup key: {{ {field}: \"{value}\" }}",
                        11000,
                        {"keyPattern": {field: 1}, "keyValue": {field: value}},
                    )

    @staticmethod
    def _matches(document, query):
        return all(document.get(key) == value for key, value in query.items())

    @staticmethod
    def _project(document, projection):
        result = copy.deepcopy(document)
        for key, flag in (projection or {}).items():
            if not flag:
                result.pop(key, None)
        return result

    def _find_raw(self, query):
        return next((d for d in self.documents if self._matches(d, query)), None)

    async def insert_one(self, document):
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self.documents.append(copy.deepcopy(document))
        return SimpleNamespace(inserted_id=document["_id"])

    async def find_one(self, query, projection=None):
        document = self._find_raw(query)
        return None if document is None else self._project(document, projection)

    def find(self, query, projection=None):
        return FakeCursor([self._project(d, projection) for d in self.documents if self._matches(d, query)])

    async def find_one_and_update(self, query, update, projection=None, return_document=ReturnDocument.BEFORE):
        document = self._find_raw(query)
        if document is None:
            return None
        before = self._project(document, projection)
        candidate = {**document, **copy.deepcopy(update.get("$set", {}))}
        for key in update.get("$unset", {}):
            candidate.pop(key, None)
        self._check_unique(candidate, exclude_id=document["_id"])
        document.clear()
        document.update(candidate)
        return self._project(document, projection) if return_document == ReturnDocument.AFTER else before

    async def update_one(self, query, update):
        document = self._find_raw(query)
        if document is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        document.update(copy.deepcopy(update.get("$set", {})))
        return SimpleNamespace(matched_count=1, modified_count=1)


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def collection():
    return FakeUsersCollection()


@pytest.fixture
async def repository(collection, clock):
    repo = UserRepository(collection, hash_cost=TEST_HASH_COST, clock=clock)
    await repo.ensure_indexes()
    return repo


@pytest.fixture
def make_payload():
    def _make(**overrides):
        payload = {
            "identity": {"firstName": "Jo", "lastName": "Doe", "birthdayAt": date(1990, 5, 17)},
            "email": "jo@x.com",
            "password": "longenough1",
            "userCategory": {"mainCategory": "doctor", "detailCategory": "practicing"},
        }
        payload.update(overrides)
        return payload
    return _make
