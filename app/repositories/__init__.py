"""
Repository package for data access layers.

Each module exposes a protocol, an in-memory implementation (tests) and a
SQLAlchemy implementation, plus a `get_*_repository` FastAPI dependency:

- accounts: device/stream registries with revision-checked writes
- subscriptions: active subscription + plan lookup (read-only)
- catalog: content read model (read-only)
- playback: playback positions / watch history
"""
