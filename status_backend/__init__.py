"""
Backend package for the status tracker API.

This package provides a FastAPI application for phases/tasks, team members,
the project name and the shared whiteboard, with an in-memory store for
development and an SQLAlchemy store for SQLite or Postgres.
"""
