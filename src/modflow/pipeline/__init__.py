"""
End-to-end request handling.

- **command_pipeline.py**: Generate, parse, approve, and execute a request,
  turning every failure into a user-facing outcome.
"""
