"""Utility helpers for the StreamGate backend.

Submodules:
- aws: S3-compatible (Cloudflare R2) client for presigned URLs
"""

__all__: list[str] = []
