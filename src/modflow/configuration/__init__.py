"""
Configuration loading.

- **app_configuration.py**: Thread-safe YAML configuration with typed accessors.
- **generation_settings.py**: Backend connection, sampling, and retry settings.
"""
