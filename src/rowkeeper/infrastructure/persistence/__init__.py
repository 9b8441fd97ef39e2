"""Persistence: data stores, queries, repositories and engine management."""
