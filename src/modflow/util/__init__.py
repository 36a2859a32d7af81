"""
Utilities.

- **logger.py**: Colored console logging and per-run log files.
- **format_utils.py**: Mention parsing and duration formatting.
"""
