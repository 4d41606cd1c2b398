from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from scalpdesk.candles.store import utcnow
from scalpdesk.context import SessionContext
from scalpdesk.models.analysis import TradePlan

log = logging.getLogger("analysis_bridge")

IDLE = "idle"
LOADING = "loading"
SUCCESS = "success"
ERROR = "error"
RATE_LIMITED = "rate_limited"


@dataclass(frozen=True)
class Ticket:
    """Handle for one outstanding analysis request."""
    epoch: int
    request_id: int
    issued_at: datetime


class AnalysisBridge:
    """
    Tracks the single outstanding analysis request.

    A result is applied only if its ticket is the latest one issued, was
    issued under the current instrument epoch, and has not timed out.
    Anything else is dropped and counted. Failures are kept as status/message
    for the caller; nothing here touches the market data.
    """

    def __init__(
        self,
        context: SessionContext,
        timeout_seconds: float = 60.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.context = context
        self.timeout = timedelta(seconds=timeout_seconds)
        self.clock = clock
        self.status = IDLE
        self.message = ""
        self.plan: Optional[TradePlan] = None
        self.pending: Optional[Ticket] = None
        self.stale_dropped = 0
        self._next_id = 0

    def issue(self) -> Ticket:
        """Start a new request. Any pending request is superseded."""
        self._next_id += 1
        ticket = Ticket(epoch=self.context.epoch, request_id=self._next_id, issued_at=self.clock())
        self.pending = ticket
        self.status = LOADING
        self.message = ""
        self.plan = None
        return ticket

    def is_live(self, ticket: Ticket) -> bool:
        pending = self.pending
        return (
            pending is not None
            and ticket.request_id == pending.request_id
            and ticket.epoch == pending.epoch
            and self.context.is_current(ticket.epoch)
            and self.clock() - pending.issued_at <= self.timeout
        )

    def ticket_for(self, epoch: int, request_id: int) -> Ticket:
        """Rebuild a ticket from the ids a client echoes back."""
        issued_at = self.pending.issued_at if self.pending is not None else self.clock()
        return Ticket(epoch=epoch, request_id=request_id, issued_at=issued_at)

    def expire(self) -> bool:
        """Fail the pending request if it has outlived the timeout."""
        if self.pending is None:
            return False
        if self.clock() - self.pending.issued_at <= self.timeout:
            return False
        log.warning("Analysis request %s timed out", self.pending.request_id)
        self.pending = None
        self.status = ERROR
        self.message = "Analysis request timed out."
        return True

    def accept(self, ticket: Ticket, payload: Dict) -> Optional[TradePlan]:
        """Validate and apply a result. Returns None for stale or malformed results."""
        self.expire()
        if not self.is_live(ticket):
            self.stale_dropped += 1
            log.info("Dropping stale analysis result request=%s epoch=%s", ticket.request_id, ticket.epoch)
            return None

        self.pending = None
        try:
            plan = TradePlan.model_validate(payload)
        except ValidationError as e:
            self.status = ERROR
            self.message = f"Failed to parse analysis response: {e.error_count()} invalid field(s)."
            return None

        self.plan = plan
        self.status = SUCCESS
        self.message = ""
        return plan

    def report_error(self, ticket: Ticket, message: str, rate_limited: bool = False) -> bool:
        """Record a service failure for `ticket`. Ignored when the ticket is stale."""
        if not self.is_live(ticket):
            self.stale_dropped += 1
            return False
        self.pending = None
        self.status = RATE_LIMITED if rate_limited else ERROR
        self.message = message
        return True

    def reset(self) -> None:
        """Instrument switch: forget any result and pending request."""
        self.pending = None
        self.plan = None
        self.status = IDLE
        self.message = ""

    def as_dict(self) -> Dict:
        return {
            "status": self.status,
            "message": self.message,
            "pending_request": self.pending.request_id if self.pending else None,
            "plan": self.plan.model_dump() if self.plan else None,
            "stale_dropped": self.stale_dropped,
        }
