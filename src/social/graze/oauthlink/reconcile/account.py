"""Account values exchanged between the reconciliation engine and the account store."""

from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from ulid import ULID

from social.graze.oauthlink.provider.mapping import ProviderKey


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    """Display attributes of an account, filled first-write-wins."""

    name: Optional[str] = None
    picture: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None

    def fill_unset(self, values: Dict[str, str]) -> List[str]:
        """
        Write the given attributes where the stored value is unset.

        An attribute counts as unset when it is None or an empty string. Values that
        are already stored are kept even when the new value differs.

        Args:
            values: Attribute name to value

        Returns:
            Names of the attributes that were written
        """
        written = []
        for attribute, value in values.items():
            if not value or getattr(self, attribute):
                continue
            setattr(self, attribute, value)
            written.append(attribute)
        return written


class AuthToken(BaseModel):
    """Access token handed over by a provider during a callback."""

    token_id: str = Field(default_factory=lambda: str(ULID()))
    provider_key: ProviderKey
    access_token: str = Field(repr=False)
    created_at: datetime = Field(default_factory=_now)


class UserAccount(BaseModel):
    """
    User account as seen by the reconciliation engine.

    ``provider_links`` is keyed by provider, so an account can never carry two links
    for the same provider. ``auth_tokens`` keeps every token ever issued, oldest first.
    ``created_at`` is None until the account is saved for the first time.
    """

    guid: str
    created_at: Optional[datetime] = None
    email: Optional[str] = None
    provider_links: Dict[ProviderKey, str] = Field(default_factory=dict)
    profile: Profile = Field(default_factory=Profile)
    auth_tokens: List[AuthToken] = Field(default_factory=list)

    def linked_id(self, provider_key: ProviderKey) -> Optional[str]:
        return self.provider_links.get(provider_key)
