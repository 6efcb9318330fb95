"""PostgreSQL account store.

Implements the AccountStore contract on SQLAlchemy's async ORM. The invariants the
resolver checks for a single callback are also declared on the schema, so two callbacks
racing to link the same identity or to create an account for the same email cannot both
commit: the loser's save fails with a StoreFailure naming the violated constraint.

Saves of existing accounts only fill email and profile columns that are still empty,
so callbacks that loaded the same account never erase each other's values.
"""

from datetime import datetime, timezone
import logging
from typing import Optional
from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    async_sessionmaker,
    AsyncSession,
)
from ulid import ULID

from social.graze.oauthlink.model.account import (
    ACCOUNT_EMAIL_INDEX,
    ACCOUNT_FOREIGN_KEYS,
    PROVIDER_IDENTITY_INDEX,
    PROVIDER_LINK_PRIMARY_KEY,
    Account,
    AccountAuthToken,
    ProviderLink,
    insert_account_stmt,
    insert_auth_tokens_stmt,
    update_account_stmt,
)
from social.graze.oauthlink.provider.mapping import ProviderKey
from social.graze.oauthlink.reconcile.account import AuthToken, Profile, UserAccount
from social.graze.oauthlink.reconcile.store import AccountStore, StoreFailure

logger = logging.getLogger(__name__)


class PostgresAccountStore(AccountStore):
    """
    Account store backed by PostgreSQL.

    Every lookup and every save opens its own database session and transaction. Access
    tokens are encrypted with the configured Fernet key before they are written and
    decrypted when an account is loaded.
    """

    def __init__(
        self,
        database_session_maker: async_sessionmaker[AsyncSession],
        encryption_key: Fernet,
    ) -> None:
        self._database_session_maker = database_session_maker
        self._encryption_key = encryption_key

    async def find_by_provider_identity(
        self, provider_key: ProviderKey, provider_id: str
    ) -> Optional[UserAccount]:
        return await self._find(
            select(ProviderLink.guid).where(
                ProviderLink.provider_key == provider_key.value,
                ProviderLink.provider_id == provider_id,
            )
        )

    async def find_by_id(self, guid: str) -> Optional[UserAccount]:
        return await self._find(select(Account.guid).where(Account.guid == guid))

    async def find_by_email(self, email: str) -> Optional[UserAccount]:
        return await self._find(select(Account.guid).where(Account.email == email))

    def create(self) -> UserAccount:
        return UserAccount(guid=str(ULID()))

    async def save(self, account: UserAccount) -> UserAccount:
        now = datetime.now(timezone.utc)
        values = {"email": account.email, **account.profile.model_dump()}
        try:
            async with self._database_session_maker() as database_session:
                async with database_session.begin():
                    if account.created_at is None:
                        await database_session.execute(
                            insert_account_stmt(account.guid, values, now)
                        )
                    else:
                        result = await database_session.execute(
                            update_account_stmt(account.guid, values)
                        )
                        if result.rowcount == 0:
                            raise StoreFailure.account_not_found()

                    stored_links_stmt = select(ProviderLink).where(
                        ProviderLink.guid == account.guid
                    )
                    stored_links = {
                        link.provider_key: link.provider_id
                        for link in (
                            await database_session.scalars(stored_links_stmt)
                        ).all()
                    }
                    for provider_key, provider_id in account.provider_links.items():
                        stored_id = stored_links.get(provider_key.value)
                        if stored_id == provider_id:
                            continue
                        if stored_id is not None:
                            raise StoreFailure.duplicate_provider_link()
                        database_session.add(
                            ProviderLink(
                                guid=account.guid,
                                provider_key=provider_key.value,
                                provider_id=provider_id,
                                created_at=now,
                            )
                        )

                    stored_tokens_stmt = select(AccountAuthToken.token_id).where(
                        AccountAuthToken.guid == account.guid
                    )
                    stored_tokens = set(
                        (await database_session.scalars(stored_tokens_stmt)).all()
                    )
                    new_tokens = [
                        {
                            "token_id": token.token_id,
                            "guid": account.guid,
                            "provider_key": token.provider_key.value,
                            "access_token": self._encrypt(token.access_token),
                            "created_at": token.created_at,
                        }
                        for token in account.auth_tokens
                        if token.token_id not in stored_tokens
                    ]
                    if new_tokens:
                        await database_session.execute(
                            insert_auth_tokens_stmt(new_tokens)
                        )

                    saved = await self._load(database_session, account.guid)
                    await database_session.commit()
        except IntegrityError as e:
            failure = self._translate_integrity_error(e)
            logger.warning("Saving account %s failed: %s", account.guid, failure)
            raise failure from e
        except SQLAlchemyError as e:
            logger.exception("Saving account %s failed", account.guid)
            raise StoreFailure.unexpected(type(e).__name__) from e

        return saved

    async def _find(self, guid_stmt: Select) -> Optional[UserAccount]:
        try:
            async with self._database_session_maker() as database_session:
                async with database_session.begin():
                    guid = (await database_session.scalars(guid_stmt)).first()
                    if guid is None:
                        return None
                    return await self._load(database_session, guid)
        except SQLAlchemyError as e:
            logger.exception("Account lookup failed")
            raise StoreFailure.unexpected(type(e).__name__) from e

    async def _load(
        self, database_session: AsyncSession, guid: str
    ) -> Optional[UserAccount]:
        account_stmt = select(Account).where(Account.guid == guid)
        account: Optional[Account] = (
            await database_session.scalars(account_stmt)
        ).first()
        if account is None:
            return None

        links_stmt = select(ProviderLink).where(ProviderLink.guid == guid)
        links = (await database_session.scalars(links_stmt)).all()

        tokens_stmt = (
            select(AccountAuthToken)
            .where(AccountAuthToken.guid == guid)
            .order_by(AccountAuthToken.created_at, AccountAuthToken.token_id)
        )
        tokens = (await database_session.scalars(tokens_stmt)).all()

        provider_links = {}
        for link in links:
            provider_key = self._provider_key(link.provider_key)
            if provider_key is not None:
                provider_links[provider_key] = link.provider_id

        auth_tokens = []
        for token in tokens:
            provider_key = self._provider_key(token.provider_key)
            if provider_key is None:
                continue
            auth_tokens.append(
                AuthToken(
                    token_id=token.token_id,
                    provider_key=provider_key,
                    access_token=self._decrypt(token.access_token),
                    created_at=token.created_at,
                )
            )

        return UserAccount(
            guid=account.guid,
            created_at=account.created_at,
            email=account.email,
            provider_links=provider_links,
            profile=Profile(
                name=account.name,
                picture=account.picture,
                gender=account.gender,
                location=account.location,
                website=account.website,
            ),
            auth_tokens=auth_tokens,
        )

    def _encrypt(self, access_token: str) -> str:
        return self._encryption_key.encrypt(access_token.encode("utf-8")).decode("ascii")

    def _decrypt(self, ciphertext: str) -> str:
        try:
            return self._encryption_key.decrypt(ciphertext.encode("ascii")).decode(
                "utf-8"
            )
        except InvalidToken as e:
            raise StoreFailure.unexpected("access token cannot be decrypted") from e

    @staticmethod
    def _provider_key(value: str) -> Optional[ProviderKey]:
        try:
            return ProviderKey(value)
        except ValueError:
            # Rows of providers that are no longer supported stay in the database.
            logger.warning("Ignoring stored row for unknown provider %s", value)
            return None

    @staticmethod
    def _translate_integrity_error(error: IntegrityError) -> StoreFailure:
        detail = str(error.orig)
        if PROVIDER_IDENTITY_INDEX in detail:
            return StoreFailure.duplicate_provider_identity()
        if ACCOUNT_EMAIL_INDEX in detail:
            return StoreFailure.duplicate_email()
        if PROVIDER_LINK_PRIMARY_KEY in detail:
            return StoreFailure.duplicate_provider_link()
        if any(foreign_key in detail for foreign_key in ACCOUNT_FOREIGN_KEYS):
            return StoreFailure.account_not_found()
        return StoreFailure.unexpected(detail)
