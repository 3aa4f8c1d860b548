"""
Per-call context for the sheet sync.

Every function on the sync path receives a ``SyncContext`` instead of reaching
for a module logger or a request global: it carries the trace id, a logger
stamped with that id, and the deadline after which no new network call may
start.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from services.exceptions import DeadlineExceeded


class RequestLogger(logging.LoggerAdapter):
    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] {msg}", kwargs


@dataclass
class SyncContext:
    request_id: str
    logger: logging.LoggerAdapter
    deadline: Optional[float] = None        # time.monotonic() value
    extra: dict = field(default_factory=dict)

    @classmethod
    def new(cls, request_id: str | None = None, timeout: float | None = None,
            logger_name: str = "pharma_sheet.sync") -> SyncContext:
        request_id = request_id or uuid.uuid4().hex[:12]
        adapter = RequestLogger(logging.getLogger(logger_name), {"request_id": request_id})
        deadline = time.monotonic() + timeout if timeout else None
        return cls(request_id=request_id, logger=adapter, deadline=deadline)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check_deadline(self, action: str):
        """Raise before starting ``action`` if the deadline has already passed."""
        if self.expired():
            self.logger.warning("Deadline exceeded before %s", action)
            raise DeadlineExceeded(f"deadline exceeded before {action}")
