"""Domain layer (pure logic).

- Keep draft rules, ordering and formatting here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Prefer deterministic functions (time passed in as arguments if needed).
"""
