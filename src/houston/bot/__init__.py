"""
Discord side of Houston.

- **runtime.py**: Constructs and owns the moderation components shared by the
  cogs and the REST API.
- **cogs/message_listener.py**: Feeds guild messages to the rule engine.
- **cogs/events_listener.py**: Startup rule fetch and ban/timeout forwarding.
"""
