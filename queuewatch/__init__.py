"""
QueueWatch - Redis Job Queue Inspector
======================================

Inspect and prune Laravel-style job queues stored in Redis:
- Discover every queue under a namespace
- Count queued, delayed and reserved jobs
- List the raw payloads of any channel
- Remove individual jobs from lists and sorted sets
"""

__version__ = "0.1.0"
__author__ = "QueueWatch Team"
