"""
Sink relacional sobre PostgreSQL (psycopg v3).
"""
from docsync.infrastructure.postgres.pg_sink import PostgresSink


__all__ = ["PostgresSink"]
