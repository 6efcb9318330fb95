"""Account Linker

Applies relink, link and create-and-link decisions to the account store.
"""

import logging
from dataclasses import dataclass

from social.graze.oauthlink.provider.normalize import ProviderIdentity
from social.graze.oauthlink.reconcile.account import AuthToken, UserAccount
from social.graze.oauthlink.reconcile.decision import Decision, LinkAction, Reject
from social.graze.oauthlink.reconcile.store import AccountStore

logger = logging.getLogger(__name__)


@dataclass
class LinkResult:
    """Account as stored after a successful link, with the message for the user."""

    account: UserAccount
    message: str
    action: LinkAction


class AccountLinker:
    def __init__(self, store: AccountStore) -> None:
        self._store = store

    async def apply(
        self, decision: Decision, identity: ProviderIdentity, access_token: str
    ) -> LinkResult:
        """
        Link the provider identity to the decision's account and persist it.

        The provider link is set, the access token is appended without deduplication,
        and profile attributes carried by the identity are written only where the
        account has none yet. The decision's account is not modified; a copy is saved.

        Args:
            decision: A Relink, Link or CreateAndLink decision
            identity: The identity the decision was resolved for
            access_token: Access token issued by the provider

        Returns:
            LinkResult with the stored account

        Raises:
            TypeError: If given a Reject decision
            StoreFailure: If the account store fails, unchanged
        """
        if isinstance(decision, Reject):
            raise TypeError("Rejected decisions cannot be applied")

        account = decision.account.model_copy(deep=True)
        account.provider_links[identity.provider_key] = identity.provider_id
        account.auth_tokens.append(
            AuthToken(provider_key=identity.provider_key, access_token=access_token)
        )
        written = account.profile.fill_unset(identity.profile_attributes())

        saved = await self._store.save(account)

        logger.debug(
            "Linked %s identity to account %s (%s), profile attributes written: %s",
            identity.provider_key.value,
            saved.guid,
            decision.action.value,
            ", ".join(written) or "none",
        )

        return LinkResult(
            account=saved,
            message=f"{identity.provider_name} account has been linked.",
            action=decision.action,
        )
