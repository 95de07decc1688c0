"""
Configuration for Houston.

- **app_configuration.py**: YAML-backed application settings with environment
  overrides for the backend URL, API port and the internal API key.
"""
