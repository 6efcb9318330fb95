"""accounts

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-17 09:12:31.402218

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("guid", sa.String(512), nullable=False),
        sa.Column("email", sa.String(512), nullable=True),
        sa.Column("name", sa.String(512), nullable=True),
        sa.Column("picture", sa.String(1024), nullable=True),
        sa.Column("gender", sa.String(64), nullable=True),
        sa.Column("location", sa.String(512), nullable=True),
        sa.Column("website", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("guid", name="pk_accounts"),
    )
    # NULL emails are distinct, so accounts without an email never collide.
    op.create_index("idx_accounts_email", "accounts", ["email"], unique=True)

    # One link per provider on an account, one account per provider identity.
    op.create_table(
        "account_provider_links",
        sa.Column("guid", sa.String(512), nullable=False),
        sa.Column("provider_key", sa.String(32), nullable=False),
        sa.Column("provider_id", sa.String(512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("guid", "provider_key", name="pk_account_provider_links"),
        sa.ForeignKeyConstraint(
            ["guid"],
            ["accounts.guid"],
            name="fk_account_provider_links_guid_accounts",
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        "idx_account_provider_links_identity",
        "account_provider_links",
        ["provider_key", "provider_id"],
        unique=True,
    )

    op.create_table(
        "account_auth_tokens",
        sa.Column("token_id", sa.String(64), nullable=False),
        sa.Column("guid", sa.String(512), nullable=False),
        sa.Column("provider_key", sa.String(32), nullable=False),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("token_id", name="pk_account_auth_tokens"),
        sa.ForeignKeyConstraint(
            ["guid"],
            ["accounts.guid"],
            name="fk_account_auth_tokens_guid_accounts",
            ondelete="CASCADE",
        ),
    )
    op.create_index("idx_account_auth_tokens_guid", "account_auth_tokens", ["guid"])


def downgrade() -> None:
    op.drop_table("account_auth_tokens")
    op.drop_table("account_provider_links")
    op.drop_table("accounts")
