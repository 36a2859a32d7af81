"""
Discord cogs for Modflow.

- **command_listener.py**: Picks up prefixed or mentioning messages and
  replies with the pipeline outcome.
"""
