"""
Queue Repository
================

Read-only inspection of Redis-backed job queues, plus administrative removal.

Each queue lives under a namespace as up to three keys:
- <namespace>:<name>            list  (queued jobs, execution order)
- <namespace>:<name>:delayed    zset  (scored by ready-at timestamp)
- <namespace>:<name>:reserved   zset  (scored by reservation expiry)

The repository never creates keys. Every call re-queries Redis; nothing
is cached and no operation is transactional.
"""

import json
import random
import re
import string
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Optional, Union

import redis


DEFAULT_NAMESPACE = "queues"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"

CHANNELS = ("queued", "delayed", "reserved")

QUEUED_SUFFIX = ":queued"
MARKER_LENGTH = 64
MARKER_ALPHABET = string.ascii_letters + string.digits


class QueueWatchError(Exception):
    """Base class for repository errors"""


class QueueNotFoundError(QueueWatchError):
    """Raised when a channel key does not exist in Redis"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Queue not found: {key}")


class UnsupportedStructureError(QueueWatchError):
    """Raised when a key holds a Redis type other than list or zset"""

    def __init__(self, type: str, context: str):
        self.type = type
        self.context = context
        super().__init__(context)


class StructureKind(str, Enum):
    """Physical Redis structure backing a channel"""
    LIST = "list"
    SORTED_SET = "zset"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_token(cls, token: Union[str, bytes, None]) -> "StructureKind":
        if isinstance(token, bytes):
            token = token.decode()
        if token == cls.LIST.value:
            return cls.LIST
        if token == cls.SORTED_SET.value:
            return cls.SORTED_SET
        return cls.UNSUPPORTED


@dataclass
class QueueSummary:
    """Per-channel counts for one queue at the instant it was read"""
    queued: int = 0
    delayed: int = 0
    reserved: int = 0

    @property
    def total(self) -> int:
        return self.queued + self.delayed + self.reserved

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class JobPayload:
    """
    Best-effort view of a serialized job.

    Laravel-style workers store JSON objects with ``job``/``displayName``,
    ``id``, ``attempts`` and ``data`` fields. Anything that does not parse
    as a JSON object keeps only ``raw``.
    """
    raw: str
    job: Optional[str] = None
    id: Optional[str] = None
    attempts: Optional[int] = None
    data: Any = None

    @classmethod
    def from_raw(cls, raw: Union[str, bytes]) -> "JobPayload":
        if isinstance(raw, bytes):
            raw = raw.decode(errors="replace")

        try:
            decoded = json.loads(raw)
        except ValueError:
            return cls(raw=raw)

        if not isinstance(decoded, dict):
            return cls(raw=raw)

        attempts = decoded.get("attempts")
        return cls(
            raw=raw,
            job=decoded.get("displayName") or decoded.get("job"),
            id=decoded.get("id"),
            attempts=attempts if isinstance(attempts, int) else None,
            data=decoded.get("data"),
        )


def random_marker(length: int = MARKER_LENGTH) -> str:
    """Random placeholder used to address a list element by value"""
    rng = random.SystemRandom()
    return "".join(rng.choice(MARKER_ALPHABET) for _ in range(length))


def _escape_glob(value: str) -> str:
    """Escape Redis KEYS pattern metacharacters"""
    return re.sub(r"([*?\[\]\\])", r"\\\1", value)


def _strip_queued(key: str) -> str:
    if key.endswith(QUEUED_SUFFIX):
        return key[: -len(QUEUED_SUFFIX)]
    return key


class QueueRepository:
    """
    Discovers queues under a namespace and inspects their channels.

    Args:
        client: redis-py client (``redis.Redis`` or compatible)
        namespace: key prefix all queues are grouped under
        marker_factory: returns the placeholder written by list removal
    """

    def __init__(
        self,
        client: "redis.Redis",
        namespace: str = DEFAULT_NAMESPACE,
        marker_factory: Optional[Callable[[], str]] = None,
    ):
        self.client = client
        self.namespace = namespace
        self.marker_factory = marker_factory or random_marker

    # =========================================================================
    # Key Namespace
    # =========================================================================

    def namespaced(self, name: str) -> str:
        return f"{self.namespace}:{name}"

    def channel_key(self, name: str, channel: str) -> str:
        """Resolve the Redis key holding a queue channel"""
        base = self.namespaced(name)
        if channel == "queued":
            return base
        return f"{base}:{channel}"

    def queue_name(self, key: Union[str, bytes]) -> str:
        """Extract the queue name from a namespaced key"""
        if isinstance(key, bytes):
            key = key.decode()
        remainder = key[len(self.namespace) + 1:]
        return remainder.split(":", 1)[0]

    # =========================================================================
    # Discovery & Metrics
    # =========================================================================

    def discover_all(self) -> dict[str, QueueSummary]:
        """
        Summarize every queue found under the namespace.

        A queue contributes up to three keys but appears once, in order of
        first discovery.
        """
        names: dict[str, None] = {}
        prefix = f"{self.namespace}:"

        for key in self.client.keys(f"{_escape_glob(self.namespace)}:*"):
            if isinstance(key, bytes):
                key = key.decode()
            if key.startswith(prefix):
                names.setdefault(self.queue_name(key), None)

        return {name: self.summarize(name) for name in names}

    def summarize(self, name: str) -> QueueSummary:
        """Count the items of each channel; missing keys count as zero"""
        base = self.namespaced(name)

        return QueueSummary(
            queued=self.length_of(base, StructureKind.LIST),
            delayed=self.length_of(f"{base}:delayed", StructureKind.SORTED_SET),
            reserved=self.length_of(f"{base}:reserved", StructureKind.SORTED_SET),
        )

    # =========================================================================
    # Item Listing
    # =========================================================================

    def list_items(self, name: str, channel: str) -> list:
        """
        Return the raw payloads of a channel.

        Lists come back in list order, sorted sets in ascending score order.
        Producers and workers may mutate the key while it is being read, so
        a list can come back shorter than the length observed first.
        """
        key = self.channel_key(name, channel)

        if not self.exists(key):
            raise QueueNotFoundError(key)

        kind, token = self._resolve_type(key, None)

        if kind is StructureKind.LIST:
            return self._list_items(key, self.length_of(key, kind))
        elif kind is StructureKind.SORTED_SET:
            return self._sorted_set_items(key)

        raise UnsupportedStructureError(
            token, f"Unable to list {key}. List type '{token}' not supported."
        )

    def _list_items(self, key: str, length: int) -> list:
        items = []
        for index in range(length):
            item = self.client.lindex(key, index)
            if item is not None:
                items.append(item)
        return items

    def _sorted_set_items(self, key: str) -> list:
        return list(self.client.zrange(key, 0, -1))

    # =========================================================================
    # Key Inspection
    # =========================================================================

    def exists(self, key: str) -> bool:
        return bool(self.client.exists(key))

    def type_of(self, key: str) -> StructureKind:
        """Structure kind of a key; ``:queued`` resolves to the base list"""
        return StructureKind.from_token(self._raw_type(key))

    def _raw_type(self, key: str) -> str:
        token = self.client.type(_strip_queued(key))
        if isinstance(token, bytes):
            token = token.decode()
        return token

    def _resolve_type(
        self,
        key: str,
        type: Union[StructureKind, str, None],
    ) -> tuple[StructureKind, str]:
        """Return the kind and the raw token used in error messages"""
        if type is None:
            token = self._raw_type(key)
        elif isinstance(type, StructureKind):
            token = type.value
        else:
            token = type
        return StructureKind.from_token(token), token

    def length_of(
        self,
        key: str,
        type: Union[StructureKind, str, None] = None,
    ) -> int:
        """Length of a list or cardinality of a sorted set"""
        kind, token = self._resolve_type(key, type)

        if kind is StructureKind.LIST:
            return self.client.llen(key)
        elif kind is StructureKind.SORTED_SET:
            return self.client.zcard(key)

        raise UnsupportedStructureError(token, f"List type '{token}' not supported.")

    # =========================================================================
    # Removal
    # =========================================================================

    def remove(
        self,
        key: str,
        value: Any,
        type: Union[StructureKind, str, None] = None,
    ) -> bool:
        """
        Remove one item from a channel.

        For lists ``value`` is the index of the element. Redis cannot delete
        by position, so the slot is overwritten with a unique marker which
        is then removed by value. The two steps are not atomic; if the
        process dies in between the marker stays in the list.

        For sorted sets ``value`` is the member itself.
        """
        kind, token = self._resolve_type(key, type)

        if kind is StructureKind.LIST:
            key = _strip_queued(key)
            marker = self.marker_factory()

            self.client.lset(key, int(value), marker)

            return self.client.lrem(key, 1, marker) > 0
        elif kind is StructureKind.SORTED_SET:
            return self.client.zrem(key, value) > 0

        raise UnsupportedStructureError(
            token,
            f"Unable to delete {value} from {key}. List type {token} not supported.",
        )

    def remove_item(self, name: str, channel: str, value: Any) -> bool:
        """Remove an item addressed by queue name and channel"""
        return self.remove(self.channel_key(name, channel), value)


def create_queue_repository(config: dict) -> QueueRepository:
    """Create a queue repository from config"""
    queue_config = config.get("queues", {}) or {}

    redis_url = queue_config.get("redis_url", DEFAULT_REDIS_URL)
    namespace = queue_config.get("namespace", DEFAULT_NAMESPACE)

    client = redis.from_url(redis_url, decode_responses=True)

    return QueueRepository(client, namespace=namespace)
