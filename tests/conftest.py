import copy
import fnmatch
import re

import pytest
from redis.exceptions import ResponseError

from queuewatch.queues import QueueRepository


class FakeRedis:
    """Dict-backed stand-in for the redis-py commands the repository uses."""

    def __init__(self):
        self.data = {}
        self.commands = []

    # --- seeding ------------------------------------------------------------

    def rpush(self, key, *values):
        kind, items = self.data.setdefault(key, ("list", []))
        assert kind == "list"
        items.extend(values)
        return len(items)

    def zadd(self, key, mapping):
        kind, members = self.data.setdefault(key, ("zset", {}))
        assert kind == "zset"
        added = len(set(mapping) - set(members))
        members.update(mapping)
        return added

    def hset(self, key, mapping):
        kind, fields = self.data.setdefault(key, ("hash", {}))
        fields.update(mapping)
        return len(mapping)

    def snapshot(self):
        return copy.deepcopy(self.data)

    # --- generic ------------------------------------------------------------

    def keys(self, pattern="*"):
        self.commands.append("keys")
        # Redis escapes with a backslash; fnmatch needs a one-character class
        pattern = re.sub(r"\\(.)", r"[\1]", pattern)
        return [key for key in self.data if fnmatch.fnmatchcase(key, pattern)]

    def exists(self, *keys):
        self.commands.append("exists")
        return sum(1 for key in keys if key in self.data)

    def type(self, key):
        self.commands.append("type")
        if key not in self.data:
            return "none"
        return self.data[key][0]

    def _get(self, key, kind):
        if key not in self.data:
            return None
        found, value = self.data[key]
        if found != kind:
            raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
        return value

    def _drop_if_empty(self, key):
        if key in self.data and not self.data[key][1]:
            del self.data[key]

    # --- lists --------------------------------------------------------------

    def llen(self, key):
        self.commands.append("llen")
        items = self._get(key, "list")
        return len(items) if items is not None else 0

    def lindex(self, key, index):
        self.commands.append("lindex")
        items = self._get(key, "list") or []
        try:
            return items[index]
        except IndexError:
            return None

    def lset(self, key, index, value):
        self.commands.append("lset")
        items = self._get(key, "list")
        if items is None:
            raise ResponseError("ERR no such key")
        if not -len(items) <= index < len(items):
            raise ResponseError("ERR index out of range")
        items[index] = value
        return True

    def lrem(self, key, count, value):
        self.commands.append("lrem")
        items = self._get(key, "list")
        if items is None:
            return 0
        removed = 0
        for i, item in enumerate(list(items)):
            if item == value and (count == 0 or removed < count):
                del items[i - removed]
                removed += 1
        self._drop_if_empty(key)
        return removed

    # --- sorted sets --------------------------------------------------------

    def zcard(self, key):
        self.commands.append("zcard")
        members = self._get(key, "zset")
        return len(members) if members is not None else 0

    def zrange(self, key, start, end):
        self.commands.append("zrange")
        members = self._get(key, "zset") or {}
        ordered = sorted(members, key=lambda member: (members[member], member))
        end = len(ordered) if end == -1 else end + 1
        return ordered[start:end]

    def zrem(self, key, *values):
        self.commands.append("zrem")
        members = self._get(key, "zset")
        if members is None:
            return 0
        removed = 0
        for value in values:
            if value in members:
                del members[value]
                removed += 1
        self._drop_if_empty(key)
        return removed


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def repository(fake_redis):
    return QueueRepository(fake_redis, marker_factory=lambda: "__marker__")


@pytest.fixture
def emails(fake_redis):
    """queues:emails = [A, B, C] and queues:emails:delayed = {X: 10, Y: 5}"""
    fake_redis.rpush("queues:emails", "A", "B", "C")
    fake_redis.zadd("queues:emails:delayed", {"X": 10, "Y": 5})
    return fake_redis
