"""
Queue Module
============

Inspection of Redis-backed job queues.
"""

from .repository import (
    CHANNELS,
    JobPayload,
    QueueNotFoundError,
    QueueRepository,
    QueueSummary,
    QueueWatchError,
    StructureKind,
    UnsupportedStructureError,
    create_queue_repository,
    random_marker,
)

__all__ = [
    "CHANNELS",
    "JobPayload",
    "QueueNotFoundError",
    "QueueRepository",
    "QueueSummary",
    "QueueWatchError",
    "StructureKind",
    "UnsupportedStructureError",
    "create_queue_repository",
    "random_marker",
]
