"""Account services built on the credential store."""

from account_service.services.accounts import AccountService

__all__ = ["AccountService"]
