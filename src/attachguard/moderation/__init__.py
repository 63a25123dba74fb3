"""
Attachment policy resolution and enforcement.

- **link_detection.py**: GIF-hosting and video link patterns, and the
  user-facing labels for detected links.

- **policy_resolver.py**: Pure merge of guild, channel, parent channel and
  opener configs, plus the resolver that fetches them.

- **opener_lookup.py**: Asks the temporary voice cog which opener spawned a
  channel.

- **attachment_blocker.py**: Per-message inspection and the delete, timeout
  and DM side effects.
"""
