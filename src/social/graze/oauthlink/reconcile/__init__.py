"""
Identity Reconciliation

This package decides, for every OAuth callback, what happens to the provider identity
and applies that decision to the account store.

Key Components:
- account.py: UserAccount, Profile and AuthToken values
- store.py: AccountStore contract and StoreFailure
- decision.py: Relink, Link, CreateAndLink and Reject decisions and conflict kinds
- resolver.py: IdentityResolver, the decision table
- linker.py: AccountLinker, which writes the link, token and profile
- service.py: ReconciliationService, the boundary used by the HTTP layer
- postgres.py: PostgreSQL account store with uniqueness enforced by the schema

Resolution and linking are separate steps. The resolver only reads; the linker only
writes, and only for non-reject decisions.
"""

from social.graze.oauthlink.reconcile.account import AuthToken, Profile, UserAccount
from social.graze.oauthlink.reconcile.decision import (
    ConflictKind,
    CreateAndLink,
    Decision,
    Link,
    LinkAction,
    Reject,
    Relink,
)
from social.graze.oauthlink.reconcile.linker import AccountLinker, LinkResult
from social.graze.oauthlink.reconcile.resolver import IdentityResolver, SessionIdentity
from social.graze.oauthlink.reconcile.service import (
    InvalidProfile,
    LinkConflict,
    ReconciliationService,
)
from social.graze.oauthlink.reconcile.store import AccountStore, StoreFailure

__all__ = [
    "AccountLinker",
    "AccountStore",
    "AuthToken",
    "ConflictKind",
    "CreateAndLink",
    "Decision",
    "IdentityResolver",
    "InvalidProfile",
    "Link",
    "LinkAction",
    "LinkConflict",
    "LinkResult",
    "Profile",
    "ReconciliationService",
    "Reject",
    "Relink",
    "SessionIdentity",
    "StoreFailure",
    "UserAccount",
]
