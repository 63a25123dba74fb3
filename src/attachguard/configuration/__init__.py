"""
Configuration management for AttachGuard.

- **app_configuration.py**: YAML configuration loader for global settings
  (database path, Redis cache URL and TTL, DM notice options). Falls back
  gracefully on missing or malformed config files.

Per-guild blocker configuration lives in the database and is served by
:mod:`attachguard.settings.blocker_config_store`.
"""
