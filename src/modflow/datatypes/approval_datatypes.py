"""Approval session data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from modflow.core.errors import ApprovalRejected, ApprovalTimeout
from modflow.datatypes.plan_datatypes import Plan


class ApprovalState(Enum):
    """Lifecycle of an approval session. Everything but PROPOSED is terminal."""

    PROPOSED = "proposed"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value

    @property
    def terminal(self) -> bool:
        return self is not ApprovalState.PROPOSED


@dataclass(slots=True)
class ApprovalSession:
    """A plan waiting for its requester's confirmation.

    Attributes:
        session_id: Unique id, used by UI components to route acknowledgements.
        plan: The plan being gated.
        requester_id: Id of the user who issued the request; only their
            acknowledgement counts.
        proposed_at: When the session was opened.
        deadline: When the session expires if nobody answers.
        state: Current state.
        decided_by: Id of the user whose acknowledgement settled the session.
    """

    session_id: str
    plan: Plan
    requester_id: str
    proposed_at: datetime
    deadline: datetime
    state: ApprovalState = ApprovalState.PROPOSED
    decided_by: Optional[str] = None

    def transition(self, new_state: ApprovalState, decided_by: Optional[str] = None) -> bool:
        """Move to ``new_state`` unless the session is already terminal.

        Returns:
            bool: True if the state changed.
        """
        if self.state.terminal or new_state is ApprovalState.PROPOSED:
            return False
        self.state = new_state
        self.decided_by = decided_by
        return True

    def raise_for_state(self) -> None:
        """Raise the approval error matching a non-approved terminal state."""
        if self.state is ApprovalState.REJECTED:
            raise ApprovalRejected(f"Plan rejected by requester {self.requester_id}")
        if self.state is ApprovalState.EXPIRED:
            raise ApprovalTimeout(f"No acknowledgement before {self.deadline.isoformat()}")
