"""Alembic migration environment for the credential store."""
