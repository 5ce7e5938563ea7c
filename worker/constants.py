"""
Worker-level constants for job flow: Redis key names and stored messages.
"""

from __future__ import annotations

# Redis keys for the job concurrency semaphore
SLOT_KEY_PREFIX = "analysis:slot:"

# error_message stored when no slot frees up in time
SLOT_TIMEOUT_MESSAGE = "Job slot timeout"
