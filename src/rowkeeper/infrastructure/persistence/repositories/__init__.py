"""Persistence repositories for record operations."""

from rowkeeper.infrastructure.persistence.repositories.repository import Repository

__all__ = ["Repository"]
