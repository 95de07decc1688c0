"""
Backend-facing and administrative services.

- **backend_client.py**: aiohttp client for the backend's internal endpoints.
- **reporting_service.py**: Moderation reports plus delivery diagnostics.
- **punishment_events.py**: Forwards bans and timeouts seen on Discord to the backend.
- **admin_actions.py**: Timeout/ban revocation and DMs requested through the REST API.
"""
