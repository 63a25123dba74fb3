"""
Database package for AttachGuard.

Public API:
    - ConnectionManager: the single long-lived aiosqlite connection
    - SchemaManager: table and index creation
    - CacheClient, MemoryTTLCache, RedisCacheClient: expiry-bounded caches
"""
