"""
Provider Profiles

This package turns provider-specific OAuth profile payloads into a canonical identity.

Key Components:
- mapping.py: Provider enumeration, accessors and the per-provider mapping table
- normalize.py: The ProviderIdentity model and the normalizer

Each provider is described by a ProviderMapping: a storage key, a human-readable name
used in messages, and one accessor per identity attribute. Accessors are plain callables
over the raw payload, built once from path expressions such as ``_json.avatar_url`` or
``emails[0].value``. A provider that does not supply an attribute simply has no accessor
for it.

Normalization never raises. Anything that cannot be read (a missing key, an index past
the end of a list, a value of the wrong shape) becomes an absent attribute.
"""

from social.graze.oauthlink.provider.mapping import (
    GITHUB,
    GOOGLE,
    PROVIDER_MAPPINGS,
    ProviderKey,
    ProviderMapping,
    field_path,
    get_mapping,
)
from social.graze.oauthlink.provider.normalize import (
    PROFILE_ATTRIBUTES,
    ProviderIdentity,
    normalize,
    normalize_email,
)

__all__ = [
    "GITHUB",
    "GOOGLE",
    "PROVIDER_MAPPINGS",
    "PROFILE_ATTRIBUTES",
    "ProviderIdentity",
    "ProviderKey",
    "ProviderMapping",
    "field_path",
    "get_mapping",
    "normalize",
    "normalize_email",
]
