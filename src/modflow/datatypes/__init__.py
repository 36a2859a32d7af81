"""
Data types shared across Modflow.

- **plan_datatypes.py**: Plans, steps, and generation requests/results.
- **action_datatypes.py**: Resolution results and per-step results.
- **workflow_datatypes.py**: Workflow records, statuses, and summaries.
- **approval_datatypes.py**: Approval sessions and their state machine.
- **event_datatypes.py**: Payloads published on the event bus.
"""
