"""
Database module for persistent ledger storage.

Uses SQLAlchemy for async database operations with SQLite by default.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from minter.config import MinterConfig, get_config
from minter.core.errors import BindError
from minter.registry.interface import OwnershipRegistry, TokenBinding

logger = structlog.get_logger(__name__)

Base = declarative_base()

# Token IDs are stored in a signed 64-bit column
MAX_STORABLE_TOKEN_ID = 2**63 - 1

LEDGER_STATE_ID = 1


class TokenRecord(Base):
    """Database model for token bindings."""

    __tablename__ = "tokens"

    token_id = Column(BigInteger, primary_key=True, autoincrement=False)
    owner = Column(String(150), nullable=False, index=True)
    metadata_ref = Column(Text, nullable=False)

    bound_at = Column(DateTime, default=datetime.utcnow)


class LedgerStateRecord(Base):
    """Database model for the single ledger state row."""

    __tablename__ = "ledger_state"

    id = Column(Integer, primary_key=True)
    current_token_id = Column(BigInteger, nullable=False, default=0)
    unit_price = Column(Text, nullable=False, default="0")  # decimal string, may exceed 64 bits
    base_uri = Column(Text, nullable=False, default="")

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


@dataclass
class LedgerState:
    """Persisted counter value and configuration."""
    current_token_id: int = 0
    unit_price: int = 0
    base_uri: str = ""
    updated_at: Optional[datetime] = None


class Database:
    """
    Async database interface for ledger persistence.

    Provides methods to save and load token bindings and ledger state.
    """

    def __init__(self, config: Optional[MinterConfig] = None):
        """
        Initialize database connection.

        Args:
            config: Minter configuration
        """
        self.config = config or get_config()
        self._engine = None
        self._session_factory = None

    @property
    def is_connected(self) -> bool:
        return self._session_factory is not None

    async def connect(self) -> None:
        """Initialize database connection and create tables."""
        if not self.config.database_url:
            raise RuntimeError("No database URL configured")

        self._engine = create_async_engine(
            self.config.database_url,
            echo=False,
        )

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        # Create tables
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("database_connected", url=self.config.database_url.split("///")[0])

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("database_disconnected")

    def _get_session(self) -> AsyncSession:
        """Get a new database session."""
        if not self._session_factory:
            raise RuntimeError("Database not connected")
        return self._session_factory()

    # Token operations

    async def insert_binding(self, binding: TokenBinding) -> None:
        """
        Insert a new token binding.

        Raises:
            BindError: If the token ID already exists or cannot be stored
        """
        if binding.token_id > MAX_STORABLE_TOKEN_ID:
            raise BindError(
                f"Token {binding.token_id} exceeds storable range",
                token_id=binding.token_id,
            )

        async with self._get_session() as session:
            existing = await session.get(TokenRecord, binding.token_id)
            if existing:
                raise BindError(
                    f"Token {binding.token_id} is already bound",
                    token_id=binding.token_id,
                )

            session.add(TokenRecord(
                token_id=binding.token_id,
                owner=binding.owner,
                metadata_ref=binding.metadata_ref,
                bound_at=binding.bound_at,
            ))
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise BindError(
                    f"Token {binding.token_id} is already bound",
                    token_id=binding.token_id,
                ) from e
            except SQLAlchemyError as e:
                await session.rollback()
                raise BindError(str(e), token_id=binding.token_id) from e

    async def delete_binding(self, token_id: int) -> bool:
        """Delete a token binding. Returns False if it did not exist."""
        async with self._get_session() as session:
            record = await session.get(TokenRecord, token_id)
            if not record:
                return False
            await session.delete(record)
            await session.commit()
            return True

    async def load_binding(self, token_id: int) -> Optional[TokenBinding]:
        """Load a token binding by ID."""
        if token_id > MAX_STORABLE_TOKEN_ID or token_id < 0:
            return None
        async with self._get_session() as session:
            record = await session.get(TokenRecord, token_id)
            if not record:
                return None
            return self._record_to_binding(record)

    async def load_token_ids_by_owner(self, owner: str) -> List[int]:
        """Load an owner's token IDs in ascending order."""
        async with self._get_session() as session:
            result = await session.execute(
                select(TokenRecord.token_id)
                .where(TokenRecord.owner == owner)
                .order_by(TokenRecord.token_id)
            )
            return list(result.scalars().all())

    async def count_tokens(self) -> int:
        """Count all bound tokens."""
        async with self._get_session() as session:
            result = await session.execute(select(func.count()).select_from(TokenRecord))
            return result.scalar_one()

    async def max_token_id(self) -> int:
        """Get the highest bound token ID, or 0 if nothing is bound."""
        async with self._get_session() as session:
            result = await session.execute(select(func.max(TokenRecord.token_id)))
            return result.scalar_one() or 0

    def _record_to_binding(self, record: TokenRecord) -> TokenBinding:
        """Convert database record to TokenBinding."""
        return TokenBinding(
            token_id=record.token_id,
            owner=record.owner,
            metadata_ref=record.metadata_ref,
            bound_at=record.bound_at,
        )

    # Ledger state operations

    async def save_ledger_state(self, state: LedgerState) -> None:
        """Save or update the ledger state row."""
        async with self._get_session() as session:
            existing = await session.get(LedgerStateRecord, LEDGER_STATE_ID)

            if existing:
                existing.current_token_id = state.current_token_id
                existing.unit_price = str(state.unit_price)
                existing.base_uri = state.base_uri
                existing.updated_at = datetime.utcnow()
            else:
                session.add(LedgerStateRecord(
                    id=LEDGER_STATE_ID,
                    current_token_id=state.current_token_id,
                    unit_price=str(state.unit_price),
                    base_uri=state.base_uri,
                    updated_at=datetime.utcnow(),
                ))

            await session.commit()

        logger.debug(
            "ledger_state_saved",
            current_token_id=state.current_token_id,
            unit_price=state.unit_price,
        )

    async def load_ledger_state(self) -> Optional[LedgerState]:
        """Load the ledger state row, or None on a fresh database."""
        async with self._get_session() as session:
            record = await session.get(LedgerStateRecord, LEDGER_STATE_ID)
            if not record:
                return None
            return LedgerState(
                current_token_id=record.current_token_id,
                unit_price=int(record.unit_price),
                base_uri=record.base_uri,
                updated_at=record.updated_at,
            )


class DatabaseOwnershipRegistry(OwnershipRegistry):
    """
    Ownership registry persisted through the Database.

    Owner and metadata reference are written in the same row, so a binding
    is visible as a single unit.
    """

    def __init__(self, database: Database):
        self.database = database

    async def connect(self) -> None:
        if not self.database.is_connected:
            await self.database.connect()

    async def disconnect(self) -> None:
        await self.database.disconnect()

    async def bind(self, token_id: int, owner: str, metadata_ref: str) -> TokenBinding:
        binding = TokenBinding(
            token_id=token_id,
            owner=owner,
            metadata_ref=metadata_ref,
            bound_at=datetime.utcnow(),
        )
        await self.database.insert_binding(binding)
        logger.debug("token_bound", token_id=token_id, owner=owner)
        return binding

    async def release(self, token_id: int) -> bool:
        released = await self.database.delete_binding(token_id)
        if released:
            logger.debug("token_released", token_id=token_id)
        return released

    async def get_binding(self, token_id: int) -> Optional[TokenBinding]:
        return await self.database.load_binding(token_id)

    async def tokens_of(self, owner: str) -> List[int]:
        return await self.database.load_token_ids_by_owner(owner)

    async def total_supply(self) -> int:
        return await self.database.count_tokens()


async def init_database(config: Optional[MinterConfig] = None) -> Database:
    """
    Initialize and connect to the database.

    Args:
        config: Minter configuration

    Returns:
        Connected Database instance
    """
    db = Database(config)
    await db.connect()
    return db
