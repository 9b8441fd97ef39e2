"""Domain layer - records and the descriptions of the entities they belong to.

This layer has no dependencies on the database or on SQLAlchemy.
"""
