"""
Approval gate for plans that require explicit confirmation.

- **approval_gate.py**: Proposes plans, waits for the requester's answer, and
  expires unanswered sessions.
"""
