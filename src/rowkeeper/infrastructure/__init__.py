"""Infrastructure layer - SQLAlchemy data store and repositories."""
