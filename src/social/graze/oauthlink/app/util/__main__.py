import argparse
import asyncio
import base64
import json
import logging
from cryptography.fernet import Fernet

from social.graze.oauthlink.provider.mapping import ProviderKey, get_mapping
from social.graze.oauthlink.provider.normalize import normalize

logger = logging.getLogger(__name__)


async def genCryptoKey() -> None:
    key = Fernet.generate_key()
    print(base64.b64encode(key).decode("utf-8"))


async def normalizeProfile(provider: str, path: str) -> int:
    mapping = get_mapping(provider)
    with open(path) as fd:
        raw_profile = json.load(fd)

    identity = normalize(mapping, raw_profile)
    if identity is None:
        print(f"{mapping.provider_name} profile has no user id")
        return 1
    print(identity.model_dump_json(indent=2))
    return 0


async def realMain() -> int:
    parser = argparse.ArgumentParser(
        prog="oauthlinkutil", description="OAuth Link utilities"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    _ = subparsers.add_parser(
        "gen-crypto", help="Generate an access token encryption key"
    )
    normalize_parser = subparsers.add_parser(
        "normalize", help="Normalize a saved provider profile payload"
    )
    normalize_parser.add_argument(
        "provider",
        choices=[provider_key.value for provider_key in ProviderKey],
        help="The provider that returned the profile.",
    )
    normalize_parser.add_argument("path", help="Path to the profile JSON file.")

    args = vars(parser.parse_args())
    command = args.get("command", None)

    if command == "gen-crypto":
        await genCryptoKey()
    elif command == "normalize":
        return await normalizeProfile(args["provider"], args["path"])
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(realMain()))


if __name__ == "__main__":
    main()
