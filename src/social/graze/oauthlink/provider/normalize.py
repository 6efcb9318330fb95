"""Provider profile normalization.

Applies a ProviderMapping to a raw profile payload and produces the canonical identity
consumed by the identity resolver.
"""

import logging
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict

from social.graze.oauthlink.provider.mapping import (
    Accessor,
    ProviderKey,
    ProviderMapping,
)

logger = logging.getLogger(__name__)

PROFILE_ATTRIBUTES = ("name", "picture", "gender", "location", "website")


class ProviderIdentity(BaseModel):
    """Canonical identity extracted from a provider profile.

    ``provider_id`` is always present. Every other attribute is None when the provider
    does not supply it or the payload does not carry it.
    """

    model_config = ConfigDict(frozen=True)

    provider_key: ProviderKey
    provider_name: str
    provider_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None

    def profile_attributes(self) -> Dict[str, str]:
        """Return the profile attributes this identity actually carries."""
        return {
            attribute: getattr(self, attribute)
            for attribute in PROFILE_ATTRIBUTES
            if getattr(self, attribute) is not None
        }


def _coerce(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _read(accessor: Optional[Accessor], raw_profile: Mapping[str, Any]) -> Optional[str]:
    if accessor is None:
        return None
    try:
        value = accessor(raw_profile)
    except (LookupError, TypeError, AttributeError, ValueError):
        logger.debug("Accessor %r failed", accessor, exc_info=True)
        return None
    return _coerce(value)


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Trim and lower-case an email address, returning None for blank input."""
    if email is None:
        return None
    return email.strip().lower() or None


def normalize(
    mapping: ProviderMapping, raw_profile: Mapping[str, Any]
) -> Optional[ProviderIdentity]:
    """Extract a canonical identity from a provider profile payload.

    Each accessor of the mapping is applied to the payload. Attributes that cannot be
    read are left absent; reading never raises and the payload is never modified.

    Args:
        mapping: Provider mapping describing the payload layout
        raw_profile: Profile payload as returned by the provider

    Returns:
        ProviderIdentity, or None when the payload carries no usable provider id
    """
    if not isinstance(raw_profile, Mapping):
        return None

    provider_id = _read(mapping.id, raw_profile)
    if provider_id is None:
        return None

    return ProviderIdentity(
        provider_key=mapping.provider_key,
        provider_name=mapping.provider_name,
        provider_id=provider_id,
        email=normalize_email(_read(mapping.email, raw_profile)),
        **{
            attribute: _read(getattr(mapping, attribute), raw_profile)
            for attribute in PROFILE_ATTRIBUTES
        },
    )
