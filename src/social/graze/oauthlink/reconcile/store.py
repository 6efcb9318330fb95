"""Account store contract.

The reconciliation engine reads and writes accounts only through this interface, so the
resolver and linker can be exercised against any implementation.
"""

from abc import ABC, abstractmethod
from typing import Optional

from social.graze.oauthlink.provider.mapping import ProviderKey
from social.graze.oauthlink.reconcile.account import UserAccount


class StoreFailure(Exception):
    """
    Exception raised by account stores.

    The reconciliation engine never interprets or retries a store failure; it is passed
    to the caller unchanged and ends the current callback. ``reason`` names the failure
    so callers can tell a lost race on a unique constraint apart from an outage.
    """

    def __init__(self, message: str, reason: str = "unexpected") -> None:
        super().__init__(message)
        self.reason = reason

    @staticmethod
    def duplicate_provider_identity() -> "StoreFailure":
        """The provider identity is already linked to another account."""
        return StoreFailure(
            "error-account-store-1000 Provider identity already linked to another account",
            reason="duplicate_provider_identity",
        )

    @staticmethod
    def duplicate_email() -> "StoreFailure":
        """Another account already uses the email address."""
        return StoreFailure(
            "error-account-store-1001 Email address already used by another account",
            reason="duplicate_email",
        )

    @staticmethod
    def duplicate_provider_link() -> "StoreFailure":
        """The account already holds a different link for the provider."""
        return StoreFailure(
            "error-account-store-1002 Account already linked with this provider",
            reason="duplicate_provider_link",
        )

    @staticmethod
    def account_not_found() -> "StoreFailure":
        """The account disappeared between reading and writing it."""
        return StoreFailure(
            "error-account-store-1003 Account not found",
            reason="account_not_found",
        )

    @staticmethod
    def unexpected(msg: str = "") -> "StoreFailure":
        """An unexpected storage error occurred."""
        return StoreFailure(f"error-account-store-1999 Unexpected store error: {msg}")


class AccountStore(ABC):
    """Persistence capability required by the reconciliation engine."""

    @abstractmethod
    async def find_by_provider_identity(
        self, provider_key: ProviderKey, provider_id: str
    ) -> Optional[UserAccount]:
        """Return the account linked to the provider identity, if any."""

    @abstractmethod
    async def find_by_id(self, guid: str) -> Optional[UserAccount]:
        """Return the account with the given guid, if any."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[UserAccount]:
        """Return the account using the (normalized) email address, if any."""

    @abstractmethod
    def create(self) -> UserAccount:
        """Return a new, unsaved account with a fresh guid."""

    @abstractmethod
    async def save(self, account: UserAccount) -> UserAccount:
        """
        Persist the account and return it as stored.

        Implementations must reject writes that would link a provider identity to a
        second account, give an account two links for one provider, or reuse another
        account's email, by raising StoreFailure.

        An account without ``created_at`` is inserted. Any other account must still
        be stored, otherwise the save fails with ``account_not_found``. Email and
        profile values already stored are never replaced or cleared.

        Raises:
            StoreFailure: If the account cannot be persisted
        """
