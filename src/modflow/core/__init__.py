"""
Shared exception hierarchy.

- **errors.py**: Errors raised across generation, parsing, resolution,
  execution, and approval.
"""
