"""
Event bus.

- **event_bus.py**: Async pub/sub with priorities, exclusive handlers, and
  scoped unsubscription.
"""
