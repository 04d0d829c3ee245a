"""
Link-in-bio portfolio backend.

A FastAPI service exposing categories and their ordered links over a
pluggable storage client (SQLAlchemy for SQLite/Postgres, or in-memory
for development and tests).
"""
