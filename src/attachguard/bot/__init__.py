"""
Discord bot cogs for AttachGuard.

- **message_listener.py**: Runs new and edited guild messages through the
  enforcement pipeline.

- **attachment_blocker_cmds.py**: The `/attachment-blocker` slash command group
  for configuring defaults, overrides and bypass roles.
"""
