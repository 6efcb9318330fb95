"""Reconciliation decisions.

Every callback resolves to exactly one of these values. Callers dispatch on the type;
there are no error callbacks and no exceptions for conflicts.
"""

from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Union

from social.graze.oauthlink.reconcile.account import UserAccount


class LinkAction(str, Enum):
    relink = "relink"
    link = "link"
    create = "create"


class ConflictKind(str, Enum):
    """Reasons a provider identity cannot be linked.

    All conflicts are recoverable: the caller shows the message and nothing is written.
    """

    identity_already_linked_elsewhere = "identity_already_linked_elsewhere"
    account_already_has_provider_link = "account_already_has_provider_link"
    email_account_already_linked = "email_account_already_linked"

    def message(self, provider_name: str) -> str:
        return _CONFLICT_MESSAGES[self].format(provider=provider_name)


_CONFLICT_MESSAGES = {
    ConflictKind.identity_already_linked_elsewhere: (
        "There is already a {provider} account that belongs to you. Sign in with that "
        "account or delete it, then link it with your current account."
    ),
    ConflictKind.account_already_has_provider_link: (
        "There is already a {provider} account linked to this account. Unlink your "
        "current {provider} account, or create a new account."
    ),
    ConflictKind.email_account_already_linked: (
        "There is already an account using this {provider} email address, but it has "
        "been already linked to another {provider} account."
    ),
}


@dataclass(frozen=True)
class Relink:
    """The identity is already linked to the account; refresh its token."""

    account: UserAccount
    action: ClassVar[LinkAction] = LinkAction.relink


@dataclass(frozen=True)
class Link:
    """Link the identity to an existing account."""

    account: UserAccount
    action: ClassVar[LinkAction] = LinkAction.link


@dataclass(frozen=True)
class CreateAndLink:
    """Persist a new account and link the identity to it."""

    account: UserAccount
    action: ClassVar[LinkAction] = LinkAction.create


@dataclass(frozen=True)
class Reject:
    """Refuse the link."""

    conflict: ConflictKind
    provider_name: str

    @property
    def message(self) -> str:
        return self.conflict.message(self.provider_name)


Decision = Union[Relink, Link, CreateAndLink, Reject]
