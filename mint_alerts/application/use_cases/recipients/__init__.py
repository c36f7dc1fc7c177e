"""Use cases for the recipient address book."""

from .upsert_recipient import upsert_recipient

__all__ = ["upsert_recipient"]
