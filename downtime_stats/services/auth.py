from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from downtime_stats.core import database as db_module
from downtime_stats.core.database import ApiKey
from downtime_stats.core.security import generate_api_key, get_key_prefix, hash_api_key, is_api_key


class AuthService:
    def __init__(self, session_factory: async_sessionmaker | None = None):
        self._session_factory = session_factory or db_module.async_session

    async def create_key(self, label: str, notes: str | None = None) -> tuple[str, ApiKey]:
        """Create a new API key. Returns (raw_key, key_row). The raw key is only available at creation time."""
        raw_key = generate_api_key()
        key_row = ApiKey(
            key_hash=hash_api_key(raw_key),
            key_prefix=get_key_prefix(raw_key),
            label=label,
            notes=notes,
            is_active=True,
        )
        async with self._session_factory() as session:
            session.add(key_row)
            await session.commit()
            await session.refresh(key_row)
        return raw_key, key_row

    async def list_keys(self) -> list[ApiKey]:
        """List all active API keys."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(ApiKey).where(ApiKey.is_active == True).order_by(ApiKey.created_at.desc())  # noqa: E712
            )
            return list(result.scalars().all())

    async def revoke_key(self, key_identifier: str) -> bool:
        """Revoke a key by prefix or full key. Returns True if found and revoked."""
        async with self._session_factory() as session:
            if is_api_key(key_identifier):
                key_hash = hash_api_key(key_identifier)
                result = await session.execute(
                    select(ApiKey).where(ApiKey.key_hash == key_hash, ApiKey.is_active == True)  # noqa: E712
                )
            else:
                result = await session.execute(
                    select(ApiKey).where(ApiKey.key_prefix == key_identifier, ApiKey.is_active == True)  # noqa: E712
                )

            key_row = result.scalar_one_or_none()
            if key_row is None:
                return False

            key_row.is_active = False
            await session.commit()
            return True

    async def validate_key(self, raw_key: str) -> ApiKey | None:
        """Validate a raw API key. Returns the key row if valid, None otherwise."""
        if not is_api_key(raw_key):
            return None
        key_hash = hash_api_key(raw_key)
        async with self._session_factory() as session:
            result = await session.execute(
                select(ApiKey).where(ApiKey.key_hash == key_hash, ApiKey.is_active == True)  # noqa: E712
            )
            return result.scalar_one_or_none()
