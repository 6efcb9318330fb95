"""
Reconciliation Handlers

This module exposes the reconciliation service to the session layer. The session layer
performs the OAuth redirect dance with the provider, then posts the profile it received,
the access token and the guid of the signed-in account (if any) to this service and acts
on the answer: sign the user in to the returned account, or show the conflict message.

The handlers in this module provide the following endpoints:
- POST /internal/api/reconcile - Reconcile one OAuth callback
- GET /internal/api/providers - List the enabled providers

Responses of the reconcile endpoint:
- 200 {"account", "message", "action"} when the identity was linked
- 409 {"conflict", "provider", "message"} when the identity was rejected
- 400 {"error"} for malformed requests and profiles without a user id
- 500 {"error", "reason"} when the account store failed
"""

import logging
from typing import Any, Dict, Optional
from aiohttp import web
from pydantic import BaseModel, ValidationError
import sentry_sdk

from social.graze.oauthlink.app.config import (
    HealthGaugeAppKey,
    ReconciliationServiceAppKey,
    SettingsAppKey,
)
from social.graze.oauthlink.provider.mapping import ProviderKey, get_mapping
from social.graze.oauthlink.reconcile.account import UserAccount
from social.graze.oauthlink.reconcile.service import InvalidProfile, LinkConflict
from social.graze.oauthlink.reconcile.store import StoreFailure

logger = logging.getLogger(__name__)


class ReconcileOperation(BaseModel):
    """
    Body of a reconcile request.

    ``account`` is the guid of the signed-in account, omitted or null when the user is
    signed out.
    """

    provider: ProviderKey
    profile: Dict[str, Any]
    access_token: str
    account: Optional[str] = None


def account_view(account: UserAccount) -> Dict[str, Any]:
    """Serialize an account for responses. Access tokens are never returned."""
    return {
        "guid": account.guid,
        "email": account.email,
        "provider_links": {
            provider_key.value: provider_id
            for provider_key, provider_id in account.provider_links.items()
        },
        "profile": account.profile.model_dump(),
        "auth_token_count": len(account.auth_tokens),
    }


async def handle_internal_reconcile(request: web.Request) -> web.Response:
    settings = request.app[SettingsAppKey]
    service = request.app[ReconciliationServiceAppKey]
    health_gauge = request.app[HealthGaugeAppKey]

    try:
        data = await request.read()
        operation = ReconcileOperation.model_validate_json(data)
    except (OSError, ValidationError):
        return web.json_response(status=400, data={"error": "Invalid JSON"})

    if operation.provider not in settings.enabled_providers:
        return web.json_response(status=400, data={"error": "Provider not enabled"})

    mapping = get_mapping(operation.provider)

    try:
        outcome = await service.resolve(
            mapping, operation.profile, operation.account, operation.access_token
        )
    except InvalidProfile as e:
        logger.warning("handle_internal_reconcile: %s", e)
        return web.json_response(status=400, data={"error": str(e)})
    except StoreFailure as e:
        logger.exception("handle_internal_reconcile: StoreFailure")
        sentry_sdk.capture_exception(e)
        await health_gauge.womp()

        response_body = {"error": "Internal Server Error", "reason": e.reason}
        if settings.debug:
            response_body["error_message"] = str(e)
        return web.json_response(status=500, data=response_body)

    if isinstance(outcome, LinkConflict):
        return web.json_response(
            status=409,
            data={
                "conflict": outcome.conflict.value,
                "provider": outcome.provider_name,
                "message": outcome.message,
            },
        )

    return web.json_response(
        {
            "account": account_view(outcome.account),
            "message": outcome.message,
            "action": outcome.action.value,
        }
    )


async def handle_internal_providers(request: web.Request) -> web.Response:
    settings = request.app[SettingsAppKey]
    return web.json_response(
        [
            {
                "key": provider_key.value,
                "name": get_mapping(provider_key).provider_name,
            }
            for provider_key in settings.enabled_providers
        ]
    )
