"""Account data models for OAuth identity reconciliation.

Provides SQLAlchemy models for user accounts, the provider identities linked to them
and the append-only log of provider access tokens.
"""
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import DateTime, ForeignKey, Index, String, Text, func, update
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import insert

from social.graze.oauthlink.model.base import Base, guidpk, str32, str512

ACCOUNT_EMAIL_INDEX = "idx_accounts_email"
PROVIDER_IDENTITY_INDEX = "idx_account_provider_links_identity"
PROVIDER_LINK_PRIMARY_KEY = "pk_account_provider_links"
ACCOUNT_FOREIGN_KEYS = (
    "fk_account_provider_links_guid_accounts",
    "fk_account_auth_tokens_guid_accounts",
)


class Account(Base):
    """User account with its first-write-wins profile.

    The email column is unique when present. Accounts created from providers that do
    not disclose an email keep it NULL, which the unique index allows any number of.
    """
    __tablename__ = "accounts"

    guid: Mapped[guidpk]
    email: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    picture: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (Index(ACCOUNT_EMAIL_INDEX, "email", unique=True),)


class ProviderLink(Base):
    """Provider identity linked to an account.

    The primary key allows one link per provider on an account, and the unique
    identity index allows one account per provider identity.
    """
    __tablename__ = "account_provider_links"

    guid: Mapped[str] = mapped_column(
        String(512),
        ForeignKey("accounts.guid", ondelete="CASCADE"),
        primary_key=True,
    )
    provider_key: Mapped[str] = mapped_column(String(32), primary_key=True)
    provider_id: Mapped[str512]
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (
        Index(PROVIDER_IDENTITY_INDEX, "provider_key", "provider_id", unique=True),
    )


class AccountAuthToken(Base):
    """Provider access token issued during a callback.

    Rows are only ever inserted. The access token column holds Fernet ciphertext.
    """
    __tablename__ = "account_auth_tokens"

    token_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    guid: Mapped[str] = mapped_column(
        String(512), ForeignKey("accounts.guid", ondelete="CASCADE"), nullable=False
    )
    provider_key: Mapped[str32]
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    __table_args__ = (Index("idx_account_auth_tokens_guid", "guid"),)


def insert_account_stmt(guid: str, values: Dict[str, Any], created_at: datetime):
    """Create PostgreSQL insert statement for a new account record."""
    return insert(Account).values([{"guid": guid, "created_at": created_at, **values}])


def update_account_stmt(guid: str, values: Dict[str, Any]):
    """Create PostgreSQL update statement for an existing account record.

    Columns that already hold a non-empty value keep it; the given values only fill
    NULL or empty columns. Two callbacks that loaded the same account can therefore
    commit in either order without erasing what the other one stored. Matches no row
    when the account was deleted.
    """
    return (
        update(Account)
        .where(Account.guid == guid)
        .values(
            {
                column: func.coalesce(func.nullif(getattr(Account, column), ""), value)
                for column, value in values.items()
            }
        )
        .execution_options(synchronize_session=False)
    )


def insert_auth_tokens_stmt(rows):
    """Create PostgreSQL insert statement for access token records.

    Tokens that were already stored are skipped, which makes saving the same account
    twice append nothing the second time.
    """
    return (
        insert(AccountAuthToken)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["token_id"])
    )
