"""
Utility modules for Houston.

- **logger.py**: Colored console + rotating file logging shared by every
  component, plus the uncaught exception hook.
- **discord_utils.py**: Stateless Discord helpers (member resolution,
  best-effort DMs, truncation, moderation log embeds).
"""
