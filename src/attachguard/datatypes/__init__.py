"""Dataclasses, enums and ID wrappers shared across AttachGuard."""
