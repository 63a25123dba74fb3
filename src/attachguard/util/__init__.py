"""
Utility functions and helpers for AttachGuard.

- **logger.py**: Centralized logging configuration with colored console output
  and rotating file handlers. Suppresses noise from discord, aiosqlite and redis.

- **discord_utils.py**: Low-level Discord helpers: permission checks, message
  deletion, member timeouts and the blocked-content DM.
"""
