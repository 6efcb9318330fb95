"""
Database Models

This package defines the database models for the account store using SQLAlchemy ORM.

Key Models:
- base.py: Declarative base with shared column types and constraint naming
- account.py: Accounts, provider links and stored access tokens
- health.py: Health monitoring gauge

The data models follow these relationships:
- Account: One row per user account, carrying the first-write-wins profile
- ProviderLink: One row per (account, provider); the provider identity is unique
  across all accounts
- AccountAuthToken: Append-only log of provider access tokens, encrypted at rest

Uniqueness is declared on the tables rather than checked in application code so that
concurrent callbacks racing to create the same account fail at commit time instead of
silently producing duplicates.
"""
