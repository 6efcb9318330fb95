"""OAuth provider mappings.

Describes where each supported provider keeps the identity attributes in the profile
payload it returns after authorization.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

Accessor = Callable[[Mapping[str, Any]], Any]

_PATH_STEP = re.compile(r"([^.\[\]]+)|\[(\d+)\]")


class ProviderKey(str, Enum):
    """Supported OAuth provider enumeration.

    The value is the storage key used for provider links and access tokens.
    """

    github = "github"
    google = "google"


def _parse_path(expression: str) -> List[Union[str, int]]:
    steps: List[Union[str, int]] = []
    position = 0
    for match in _PATH_STEP.finditer(expression):
        separator = expression[position : match.start()]
        if separator not in ("", "."):
            raise ValueError(f"invalid field path: {expression!r}")
        key, index = match.groups()
        steps.append(int(index) if index is not None else key)
        position = match.end()
    if not steps or position != len(expression):
        raise ValueError(f"invalid field path: {expression!r}")
    return steps


def field_path(expression: str) -> Accessor:
    """Compile a path expression into an accessor over a profile payload.

    Dotted segments read mapping keys and bracketed integers read list items, so
    ``emails[0].value`` reads ``profile["emails"][0]["value"]``. The returned accessor
    yields None as soon as a step cannot be followed.

    Args:
        expression: Path expression, validated when the accessor is built

    Returns:
        Accessor returning the value at the path or None

    Raises:
        ValueError: If the expression is malformed
    """
    steps = _parse_path(expression)

    def accessor(profile: Mapping[str, Any]) -> Any:
        value: Any = profile
        for step in steps:
            if isinstance(step, int):
                if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
                    return None
                if step >= len(value):
                    return None
                value = value[step]
            else:
                if not isinstance(value, Mapping):
                    return None
                value = value.get(step)
            if value is None:
                return None
        return value

    accessor.__qualname__ = f"field_path({expression!r})"
    return accessor


@dataclass(frozen=True)
class ProviderMapping:
    """Where a provider keeps identity attributes in its profile payload.

    Attributes:
        provider_key: Storage and lookup key for links and tokens
        provider_name: Human-readable provider name used in messages
        id: Accessor for the provider's stable user id (always supplied)
        email: Accessor for the email address, if the provider supplies one
        name: Accessor for the display name
        picture: Accessor for the avatar URL
        gender: Accessor for the gender
        location: Accessor for the location
        website: Accessor for the website URL
    """

    provider_key: ProviderKey
    provider_name: str
    id: Accessor
    email: Optional[Accessor] = None
    name: Optional[Accessor] = None
    picture: Optional[Accessor] = None
    gender: Optional[Accessor] = None
    location: Optional[Accessor] = None
    website: Optional[Accessor] = None


GITHUB = ProviderMapping(
    provider_key=ProviderKey.github,
    provider_name="GitHub",
    id=field_path("id"),
    email=field_path("_json.email"),
    name=field_path("displayName"),
    picture=field_path("_json.avatar_url"),
    location=field_path("_json.location"),
    website=field_path("_json.blog"),
)

GOOGLE = ProviderMapping(
    provider_key=ProviderKey.google,
    provider_name="Google",
    id=field_path("id"),
    email=field_path("emails[0].value"),
    name=field_path("displayName"),
    picture=field_path("_json.image.url"),
    gender=field_path("_json.gender"),
)

PROVIDER_MAPPINGS: Dict[ProviderKey, ProviderMapping] = {
    mapping.provider_key: mapping for mapping in (GITHUB, GOOGLE)
}


def get_mapping(provider: Union[ProviderKey, str]) -> ProviderMapping:
    """Return the mapping for a provider key.

    Raises:
        KeyError: If the provider is not supported
    """
    try:
        return PROVIDER_MAPPINGS[ProviderKey(provider)]
    except ValueError:
        raise KeyError(provider) from None
