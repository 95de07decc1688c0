"""
REST control plane for Houston.

The backend drives the bot through these endpoints: pushing rule sets,
inspecting the rule cache and reporting diagnostics, and requesting
administrative actions. The FastAPI app runs inside the bot process; see
:class:`houston.api.server.APIService`.

- **app.py**: Application factory and exception handlers.
- **dependencies.py**: API key check and runtime access.
- **models.py**: Request bodies.
- **routers/**: Moderation and DM endpoints.
- **server.py**: uvicorn lifecycle alongside the Discord client.
"""
