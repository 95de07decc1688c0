"""
Shared data structures for Houston.

- **discord_datatypes.py**: Type-safe wrappers for Discord snowflake IDs that
  arrive as strings from the backend and the REST API.
- **rule_datatypes.py**: Moderation rules, their typed trigger/action
  configurations, per-action results and the report sent to the backend.
"""
