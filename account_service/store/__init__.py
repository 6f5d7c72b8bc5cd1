"""Persistence adapters."""

from account_service.store.users import UserStore

__all__ = ["UserStore"]
