"""Database layer: declarative base, models and session management."""
