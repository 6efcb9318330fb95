"""
OAuth Link - OAuth Identity Reconciliation Service

This module implements the identity reconciliation engine that sits behind third-party
OAuth sign-in. Every time a provider (GitHub, Google) calls back with a user profile, the
service decides whether that provider identity should be attached to an existing account,
whether a new account has to be created, or whether the attempt must be rejected because
it would break one of the account linking invariants.

Key Components:
- provider: Provider mappings and the profile normalizer
- reconcile: Identity resolver, account linker, account store and the service boundary
- model: Database models for accounts, provider links and access tokens
- app: Internal HTTP API, configuration, logging and background tasks

Reconciliation Flow:
1. The raw provider payload is normalized into a ProviderIdentity
2. The resolver reads the account store and reaches exactly one decision:
   relink, link, create-and-link or reject
3. The linker applies non-reject decisions: it records the provider link, appends the
   access token, fills unset profile attributes and persists the account
4. The caller receives either the linked account and a message or a typed conflict

Account Invariants:
- A provider identity is linked to at most one account
- An account holds at most one link per provider
- Profile attributes are first-write-wins
- Access tokens are append-only

The invariants are enforced twice: by the resolver's decision table for a single
callback, and by unique indexes in the account store for concurrent callbacks.
"""
