"""StreamGate API v1.

Routers live in `app.api.v1.routers`; `create_app()` mounts the combined
router at `settings.API_V1_STR`.
"""
