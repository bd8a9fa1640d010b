"""
Texts Service package for the Text Analysis Service.

This package stores user-owned text documents and serves derived text
metrics for them. It provides:

- app.main: API surface for users, texts, analysis and health.
- app.caching: Fingerprint-guarded derived cache and per-user list cache.
- app.ratelimit: Fixed-window rate limiter, policies and the FastAPI guard.
- app.analysis: Pure text analysis functions.
- app.persistence: PostgreSQL and in-memory repositories.

Guidelines:
- Never serve derived data computed from content other than the current one.
- Treat the key-value store as optional: miss on cache, admit on rate limit.
"""
