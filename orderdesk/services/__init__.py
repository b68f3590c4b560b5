"""Order core services.

Each service takes a session factory (``with factory() as session``) so the
same code runs against the configured database or a test database.
"""
