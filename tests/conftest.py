import asyncio
import copy
import re
from collections import Counter, defaultdict

import pytest
from bson import ObjectId

from swipehire.core.cache import CacheStore
from swipehire.database.db import INDEXES, DocumentStoreConflict


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def _matches(doc, query):
    for field, cond in query.items():
        if field == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        value = doc.get(field)
        if isinstance(cond, dict) and any(op.startswith("$") for op in cond):
            for op, arg in cond.items():
                if op == "$ne" and value == arg:
                    return False
                if op == "$in" and value not in arg:
                    return False
                if op == "$regex":
                    flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
                    if not isinstance(value, str) or not re.search(arg, value, flags):
                        return False
        elif value != cond:
            return False
    return True


def _sort(docs, sort):
    for field, direction in reversed(list(sort)):
        docs = sorted(docs, key=lambda d: (d.get(field) is not None, d.get(field)), reverse=direction < 0)
    return docs


class FakeDocumentStore:
    """In-memory stand-in for MongoDocumentStore covering the queries the accessors issue."""

    def __init__(self):
        self.collections = defaultdict(list)
        self.calls = Counter()
        self.fail_with = None
        # Seconds find_one waits between reading and returning, to interleave writes
        self.read_delay = 0

    def _call(self, name):
        self.calls[name] += 1
        if self.fail_with is not None:
            raise self.fail_with

    def seed(self, collection, **fields):
        doc = {"_id": ObjectId(), **fields}
        self.collections[collection].append(doc)
        return doc["_id"]

    def _select(self, collection, query):
        return [d for d in self.collections[collection] if _matches(d, query)]

    def _check_unique(self, collection, doc):
        for model in INDEXES.get(collection, []):
            spec = model.document
            if not spec.get("unique"):
                continue
            fields = list(spec["key"])
            values = [doc.get(field) for field in fields]
            if spec.get("sparse") and any(value is None for value in values):
                continue
            for other in self.collections[collection]:
                if [other.get(field) for field in fields] == values:
                    raise DocumentStoreConflict(f"{collection}.insert_one violates a unique index")

    async def find_one(self, collection, query, projection=None):
        self._call("find_one")
        found = copy.deepcopy(self._select(collection, query))
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        return found[0] if found else None

    async def find(self, collection, query, projection=None, sort=None, skip=0, limit=0):
        self._call("find")
        docs = self._select(collection, query)
        if sort:
            docs = _sort(docs, sort)
        docs = docs[skip:]
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def aggregate(self, collection, pipeline):
        self._call("aggregate")
        docs = list(self.collections[collection])
        for stage in pipeline:
            (op, arg), = stage.items()
            if op == "$match":
                docs = [d for d in docs if _matches(d, arg)]
            elif op == "$sort":
                docs = _sort(docs, arg.items())
            elif op == "$skip":
                docs = docs[arg:]
            elif op == "$limit":
                docs = docs[:arg]
            elif op == "$group":
                field = arg["_id"].lstrip("$")
                counts = Counter(d.get(field) for d in docs)
                docs = [{"_id": value, "count": count} for value, count in counts.items()]
        return copy.deepcopy(docs)

    async def count_documents(self, collection, query):
        self._call("count_documents")
        return len(self._select(collection, query))

    async def insert_one(self, collection, document):
        self._call("insert_one")
        doc = copy.deepcopy(document)
        doc.setdefault("_id", ObjectId())
        self._check_unique(collection, doc)
        self.collections[collection].append(doc)
        return doc["_id"]

    async def find_one_and_update(self, collection, query, update, projection=None):
        self._call("find_one_and_update")
        found = self._select(collection, query)
        if not found:
            return None
        found[0].update(update.get("$set", {}))
        return copy.deepcopy(found[0])

    async def update_many(self, collection, query, update):
        self._call("update_many")
        found = self._select(collection, query)
        for doc in found:
            doc.update(update.get("$set", {}))
        return len(found)

    async def delete_one(self, collection, query):
        self._call("delete_one")
        found = self._select(collection, query)
        if not found:
            return 0
        self.collections[collection].remove(found[0])
        return 1

    async def ping(self):
        self._call("ping")

    async def close(self):
        pass


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(max_entries=100, clock=clock)


@pytest.fixture
def store():
    return FakeDocumentStore()
