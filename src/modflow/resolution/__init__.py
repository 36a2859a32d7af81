"""
Action name resolution.

- **capabilities.py**: The canonical action catalog and alias table.
- **similarity.py**: Levenshtein distance and normalized similarity.
- **composite_patterns.py**: Recognizes multi-action requests and expands
  them into primitive actions.
- **action_resolver.py**: Resolves raw action names in a fixed order:
  exact, alias, fuzzy, composite.
"""
