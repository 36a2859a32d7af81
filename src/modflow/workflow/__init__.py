"""
Plan execution.

- **executor.py**: Execution context and the action executor protocol.
- **workflow_registry.py**: Bounded store of workflow records.
- **workflow_runner.py**: Runs plans sequentially or in parallel and
  publishes workflow events.
"""
