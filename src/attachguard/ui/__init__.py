"""
Embeds shown to users and administrators.

- **blocker_embeds.py**: The DM sent when a message is removed and the
  `/attachment-blocker view` configuration summary.
"""
