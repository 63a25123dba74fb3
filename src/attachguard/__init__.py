"""
AttachGuard - Attachment and media-link enforcement for Discord guilds

Core Components:

- **Config Store**: Guild defaults, channel overrides and temporary voice
  opener overrides persisted in SQLite with a Redis (or in-process) cache
- **Policy Resolver**: Merges the scopes that apply to a channel, including
  threads and channels spawned by an opener
- **Enforcement Pipeline**: Classifies uploads, forwarded media and media
  links, then deletes, times out and notifies
- **Admin Commands**: `/attachment-blocker` slash command group

Usage:
    from attachguard.main import main
    main()
"""
