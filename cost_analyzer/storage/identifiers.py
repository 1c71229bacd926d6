"""Sortable, collision-resistant identifiers for runs and tool calls"""

import uuid
from datetime import datetime, timezone


def _sortable_id() -> str:
    # UTC timestamp prefix keeps ids lexicographically ordered by creation time
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{timestamp}-{uuid.uuid4().hex[:12]}"


def new_execution_id() -> str:
    """Mint the identity that scopes one run's (or one step's) artifacts."""
    return _sortable_id()


def new_call_id() -> str:
    """Mint the identifier for a single tool invocation."""
    return _sortable_id()
