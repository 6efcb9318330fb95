"""
Identity Resolver

Decides what an OAuth callback should do with a provider identity. The decision depends
on three inputs: the normalized identity, whether the caller is signed in, and what the
account store already knows about the identity and its email address.

Signed in, evaluated in order:
1. The account is already linked to this identity: relink it.
2. Another account is linked to this identity: reject.
3. The account is linked to a different identity of the same provider: reject.
4. Otherwise: link the identity to the account.

Signed out, evaluated in order:
1. An account is linked to this identity: relink it (this is a sign-in).
2. The identity has no email: create a new account.
3. An account uses the email: reject if it is linked to a different identity of the
   same provider, otherwise link the identity to it.
4. Otherwise: create a new account with the email.

Exact identity matches are always checked before email matches, so once an identity is
linked, an email collision can never move it to another account.

The resolver only reads. It performs at most two lookups per callback, three when the
session account no longer exists, and leaves every write to the AccountLinker.
"""

import logging
from typing import Optional

from social.graze.oauthlink.provider.normalize import ProviderIdentity
from social.graze.oauthlink.reconcile.account import UserAccount
from social.graze.oauthlink.reconcile.decision import (
    ConflictKind,
    CreateAndLink,
    Decision,
    Link,
    Reject,
    Relink,
)
from social.graze.oauthlink.reconcile.store import AccountStore

logger = logging.getLogger(__name__)

SessionIdentity = Optional[str]
"""Guid of the signed-in account, or None when signed out."""


class IdentityResolver:
    """Decision engine for provider identities, backed by an injected account store."""

    def __init__(self, store: AccountStore) -> None:
        self._store = store

    async def resolve(
        self, identity: ProviderIdentity, session: SessionIdentity = None
    ) -> Decision:
        """
        Resolve a provider identity against the session and the account store.

        The signed-in account is always read from the store by guid, never taken from
        session data, so a link made by a concurrent callback is seen. A session guid
        whose account no longer exists is resolved as signed out.

        Args:
            identity: Normalized provider identity
            session: Guid of the signed-in account, or None

        Returns:
            Exactly one Relink, Link, CreateAndLink or Reject decision

        Raises:
            StoreFailure: If the account store fails, unchanged
        """
        account: Optional[UserAccount] = None
        if session is not None:
            account = await self._store.find_by_id(session)
            if account is None:
                logger.warning(
                    "Session account %s not found, resolving as signed out", session
                )

        if account is not None:
            decision = await self._resolve_signed_in(identity, account)
        else:
            decision = await self._resolve_signed_out(identity)

        if isinstance(decision, Reject):
            logger.info(
                "Rejected %s identity: %s",
                identity.provider_key.value,
                decision.conflict.value,
            )
        else:
            logger.info(
                "Resolved %s identity: %s account %s",
                identity.provider_key.value,
                decision.action.value,
                decision.account.guid,
            )
        return decision

    async def _resolve_signed_in(
        self, identity: ProviderIdentity, account: UserAccount
    ) -> Decision:
        linked_id = account.linked_id(identity.provider_key)
        if linked_id == identity.provider_id:
            return Relink(account)

        holder = await self._store.find_by_provider_identity(
            identity.provider_key, identity.provider_id
        )
        if holder is not None and holder.guid != account.guid:
            return Reject(
                ConflictKind.identity_already_linked_elsewhere, identity.provider_name
            )

        if linked_id is not None:
            return Reject(
                ConflictKind.account_already_has_provider_link, identity.provider_name
            )

        return Link(account)

    async def _resolve_signed_out(self, identity: ProviderIdentity) -> Decision:
        holder = await self._store.find_by_provider_identity(
            identity.provider_key, identity.provider_id
        )
        if holder is not None:
            return Relink(holder)

        # Without an email there is no way to find another account of the same person.
        if identity.email is None:
            return CreateAndLink(self._store.create())

        owner = await self._store.find_by_email(identity.email)
        if owner is not None:
            # Only one link per provider; the holder lookup above already ruled out
            # this identity, so any existing link is a different one.
            if owner.linked_id(identity.provider_key) is not None:
                return Reject(
                    ConflictKind.email_account_already_linked, identity.provider_name
                )
            return Link(owner)

        account = self._store.create()
        account.email = identity.email
        return CreateAndLink(account)
