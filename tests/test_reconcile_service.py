"""
Unit tests for social.graze.oauthlink.reconcile.service

Tests run full callback sequences through the service against the in-memory store,
including concurrent callbacks for the same identity, and check the decision metrics.
"""

import asyncio
import pytest

from social.graze.oauthlink.provider.mapping import GITHUB, GOOGLE, ProviderKey
from social.graze.oauthlink.provider.normalize import normalize
from social.graze.oauthlink.reconcile.decision import ConflictKind, LinkAction
from social.graze.oauthlink.reconcile.linker import LinkResult
from social.graze.oauthlink.reconcile.service import (
    InvalidProfile,
    LinkConflict,
    ReconciliationService,
)
from social.graze.oauthlink.reconcile.store import StoreFailure
from tests.test_helpers import assert_link_invariants, github_profile, google_profile


class TestScenarios:
    """Test suite for the documented callback scenarios."""

    async def test_new_identity_without_email(self, memory_store, service):
        result = await service.resolve(GITHUB, github_profile(), None, "gho_a")

        assert isinstance(result, LinkResult)
        assert result.action == LinkAction.create
        account = memory_store.get(result.account.guid)
        assert account.email is None
        assert account.provider_links == {ProviderKey.github: "583231"}
        assert len(account.auth_tokens) == 1
        assert account.profile.name == "The Octocat"
        assert account.profile.gender is None

    async def test_sign_in_with_linked_identity(self, memory_store, service):
        first = await service.resolve(GITHUB, github_profile(), None, "gho_a")
        second = await service.resolve(GITHUB, github_profile(), None, "gho_b")

        assert second.action == LinkAction.relink
        assert second.account.guid == first.account.guid
        account = memory_store.get(first.account.guid)
        assert account.provider_links == {ProviderKey.github: "583231"}
        assert [t.access_token for t in account.auth_tokens] == ["gho_a", "gho_b"]
        assert len(memory_store.accounts) == 1

    async def test_signed_in_relink(self, memory_store, service):
        account = memory_store.add(provider_links={ProviderKey.github: "583231"})

        result = await service.resolve(GITHUB, github_profile(), account.guid, "gho_a")

        assert result.action == LinkAction.relink
        assert result.account.guid == account.guid

    async def test_signed_in_identity_linked_elsewhere(self, memory_store, service):
        memory_store.add(provider_links={ProviderKey.github: "583231"})
        current = memory_store.add()

        result = await service.resolve(GITHUB, github_profile(), current.guid, "gho_a")

        assert result == LinkConflict(
            ConflictKind.identity_already_linked_elsewhere, "GitHub"
        )
        assert memory_store.writes == 0
        assert memory_store.get(current.guid).auth_tokens == []

    async def test_email_account_already_linked(self, memory_store, service):
        memory_store.add(
            email="octocat@github.com", provider_links={ProviderKey.github: "999"}
        )

        result = await service.resolve(
            GITHUB, github_profile(email="octocat@github.com"), None, "gho_a"
        )

        assert isinstance(result, LinkConflict)
        assert result.conflict == ConflictKind.email_account_already_linked
        assert "GitHub email address" in result.message
        assert memory_store.writes == 0


class TestSequences:
    """Test suite for multi-callback sequences."""

    async def test_second_provider_joins_by_email(self, memory_store, service):
        github = await service.resolve(
            GITHUB, github_profile(email="Ada@Example.com"), None, "gho_a"
        )
        google = await service.resolve(
            GOOGLE, google_profile(email="ada@example.com"), None, "ya29.a"
        )

        assert google.action == LinkAction.link
        assert google.account.guid == github.account.guid
        account = memory_store.get(github.account.guid)
        assert account.provider_links == {
            ProviderKey.github: "583231",
            ProviderKey.google: "109876543210987654321",
        }
        # First write wins for the name, gender only comes from Google.
        assert account.profile.name == "The Octocat"
        assert account.profile.gender == "female"
        assert_link_invariants(memory_store)

    async def test_link_while_signed_in_then_sign_in_with_either(
        self, memory_store, service
    ):
        created = await service.resolve(GITHUB, github_profile(), None, "gho_a")
        guid = created.account.guid

        linked = await service.resolve(GOOGLE, google_profile(), guid, "ya29.a")
        via_google = await service.resolve(GOOGLE, google_profile(), None, "ya29.b")
        via_github = await service.resolve(GITHUB, github_profile(), None, "gho_b")

        assert linked.action == LinkAction.link
        assert via_google.account.guid == guid
        assert via_github.account.guid == guid
        assert len(memory_store.get(guid).auth_tokens) == 4

    async def test_identity_never_moves_between_accounts(self, memory_store, service):
        created = await service.resolve(GITHUB, github_profile(), None, "gho_a")
        other = memory_store.add(email="someone@example.com")

        result = await service.resolve(GITHUB, github_profile(), other.guid, "gho_b")

        assert isinstance(result, LinkConflict)
        holder = await memory_store.find_by_provider_identity(
            ProviderKey.github, "583231"
        )
        assert holder.guid == created.account.guid

    async def test_relink_is_idempotent_except_for_tokens(self, memory_store, service):
        first = await service.resolve(GITHUB, github_profile(), None, "gho_a")
        before = memory_store.get(first.account.guid)

        for token in ("gho_b", "gho_c"):
            await service.resolve(
                GITHUB, github_profile(display_name="Renamed"), None, token
            )

        after = memory_store.get(first.account.guid)
        assert after.provider_links == before.provider_links
        assert after.profile == before.profile
        assert after.email == before.email
        assert len(after.auth_tokens) == 3


class TestConcurrency:
    """Test suite for concurrent callbacks racing on the same identity."""

    async def test_concurrent_first_sign_in(self, memory_store, service):
        results = await asyncio.gather(
            *[
                service.resolve(GITHUB, github_profile(), None, f"gho_{i}")
                for i in range(3)
            ],
            return_exceptions=True,
        )

        winners = [r for r in results if isinstance(r, LinkResult)]
        losers = [r for r in results if isinstance(r, StoreFailure)]
        assert len(winners) >= 1
        assert len(winners) + len(losers) == 3
        assert all(r.reason == "duplicate_provider_identity" for r in losers)
        assert len(memory_store.accounts) == 1
        assert_link_invariants(memory_store)

    async def test_concurrent_links_to_two_accounts(self, memory_store, service):
        first = memory_store.add()
        second = memory_store.add()

        # Both callbacks resolve before either saves.
        decisions = [
            await service.resolver.resolve(
                _identity(GITHUB, github_profile()), account.guid
            )
            for account in (first, second)
        ]
        identity = _identity(GITHUB, github_profile())

        await service.linker.apply(decisions[0], identity, "gho_a")
        with pytest.raises(StoreFailure) as excinfo:
            await service.linker.apply(decisions[1], identity, "gho_b")

        assert excinfo.value.reason == "duplicate_provider_identity"
        assert_link_invariants(memory_store)


    async def test_concurrent_links_keep_first_profile(self, memory_store, service):
        owner = memory_store.add(email="ada@example.com")
        github = _identity(GITHUB, github_profile(email="ada@example.com"))
        google = _identity(
            GOOGLE, google_profile(email="ada@example.com", display_name=None)
        )

        # Both callbacks resolve before either saves.
        github_decision = await service.resolver.resolve(github)
        google_decision = await service.resolver.resolve(google)
        await service.linker.apply(github_decision, github, "gho_a")
        await service.linker.apply(google_decision, google, "ya29.a")

        account = memory_store.get(owner.guid)
        assert account.provider_links == {
            ProviderKey.github: "583231",
            ProviderKey.google: "109876543210987654321",
        }
        assert account.profile.name == "The Octocat"
        assert account.profile.location == "San Francisco"
        assert account.profile.gender == "female"
        assert len(account.auth_tokens) == 2


class TestServiceErrors:
    """Test suite for invalid input and store failures."""

    async def test_profile_without_id(self, memory_store, service):
        with pytest.raises(InvalidProfile) as excinfo:
            await service.resolve(GITHUB, {"displayName": "No Id"}, None, "gho_a")

        assert "error-reconcile-1000 GitHub profile has no user id" in str(excinfo.value)
        assert memory_store.reads == 0

    async def test_store_failure_propagates(self, memory_store, service):
        memory_store.fail_next_save = StoreFailure.unexpected("boom")

        with pytest.raises(StoreFailure):
            await service.resolve(GITHUB, github_profile(), None, "gho_a")

        assert memory_store.accounts == {}


class TestServiceMetrics:
    """Test suite for decision counters."""

    async def test_counts_outcomes(self, memory_store, statsd_client, service):
        await service.resolve(GITHUB, github_profile(), None, "gho_a")
        memory_store.add(
            email="ada@example.com", provider_links={ProviderKey.google: "other"}
        )
        await service.resolve(
            GOOGLE, google_profile(email="ada@example.com"), None, "ya29.a"
        )

        statsd_client.increment.assert_any_call(
            "oauthlink.reconcile.decision",
            1,
            tag_dict={"provider": "github", "outcome": "create"},
        )
        statsd_client.increment.assert_any_call(
            "oauthlink.reconcile.decision",
            1,
            tag_dict={"provider": "google", "outcome": "email_account_already_linked"},
        )

    async def test_works_without_statsd(self, memory_store):
        service = ReconciliationService(memory_store)

        result = await service.resolve(GITHUB, github_profile(), None, "gho_a")

        assert result.action == LinkAction.create


def _identity(mapping, raw_profile):
    identity = normalize(mapping, raw_profile)
    assert identity is not None
    return identity
