"""
identity_service tests

Covers the core backend logic of the identity service:

- FastAPI application and routes (`main.py`, `routes/`)
- Connection pool, query executor and account queries (`db.py`, `executor.py`, `store.py`)
- Password hashing and bearer tokens (`auth.py`, `security.py`)
- Startup probing and graceful shutdown (`lifecycle.py`)

Every test runs against a throwaway SQLite database under pytest's `tmp_path`.
"""
