"""Database models."""
from linksplit.models.link import Link

__all__ = ["Link"]
