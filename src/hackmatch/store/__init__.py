"""Collaborator implementations."""

from .memory import InMemoryPlatformStore

__all__ = ["InMemoryPlatformStore"]
