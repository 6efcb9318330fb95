"""Reconciliation service boundary.

Entry point for the session layer: takes the raw provider payload of an OAuth callback
and returns either the linked account or a typed conflict.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union
from aio_statsd import TelegrafStatsdClient

from social.graze.oauthlink.provider.mapping import ProviderMapping
from social.graze.oauthlink.provider.normalize import normalize
from social.graze.oauthlink.reconcile.decision import ConflictKind, Reject
from social.graze.oauthlink.reconcile.linker import AccountLinker, LinkResult
from social.graze.oauthlink.reconcile.resolver import IdentityResolver, SessionIdentity
from social.graze.oauthlink.reconcile.store import AccountStore

logger = logging.getLogger(__name__)


class InvalidProfile(ValueError):
    """
    Exception raised when a provider payload does not describe an identity.

    Providers always return a user id after a successful authorization, so a payload
    without one points at a broken caller rather than a user error.
    """

    @staticmethod
    def missing_identifier(provider_name: str) -> "InvalidProfile":
        return InvalidProfile(
            f"error-reconcile-1000 {provider_name} profile has no user id"
        )


@dataclass
class LinkConflict:
    """The provider identity could not be linked. Nothing was written."""

    conflict: ConflictKind
    provider_name: str

    @property
    def message(self) -> str:
        return self.conflict.message(self.provider_name)


class ReconciliationService:
    """
    Normalizes, resolves and links provider identities.

    The service holds no per-callback state. Each call to resolve is an independent
    unit of work against the injected account store.
    """

    def __init__(
        self,
        store: AccountStore,
        statsd_client: Optional[TelegrafStatsdClient] = None,
    ) -> None:
        self.resolver = IdentityResolver(store)
        self.linker = AccountLinker(store)
        self._statsd_client = statsd_client

    async def resolve(
        self,
        mapping: ProviderMapping,
        raw_profile: Mapping[str, Any],
        session: SessionIdentity,
        access_token: str,
    ) -> Union[LinkResult, LinkConflict]:
        """
        Reconcile one OAuth callback.

        Args:
            mapping: Mapping of the provider that issued the callback
            raw_profile: Profile payload returned by the provider
            session: Guid of the signed-in account, or None when signed out
            access_token: Access token issued by the provider

        Returns:
            LinkResult when the identity was linked, LinkConflict when it was rejected

        Raises:
            InvalidProfile: If the payload carries no provider user id
            StoreFailure: If the account store fails, unchanged
        """
        identity = normalize(mapping, raw_profile)
        if identity is None:
            raise InvalidProfile.missing_identifier(mapping.provider_name)

        decision = await self.resolver.resolve(identity, session)

        if isinstance(decision, Reject):
            self._count(mapping, decision.conflict.value)
            return LinkConflict(
                conflict=decision.conflict, provider_name=decision.provider_name
            )

        result = await self.linker.apply(decision, identity, access_token)
        self._count(mapping, result.action.value)
        return result

    def _count(self, mapping: ProviderMapping, outcome: str) -> None:
        if self._statsd_client is None:
            return
        self._statsd_client.increment(
            "oauthlink.reconcile.decision",
            1,
            tag_dict={"provider": mapping.provider_key.value, "outcome": outcome},
        )
