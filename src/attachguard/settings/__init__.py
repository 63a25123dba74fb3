"""Attachment blocker configuration storage: repositories and the cached store."""
