"""Base repository with common database operations."""

from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from sitechat.db.models.timestamps import utc_now

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Keyed record store: create, get, list by owner, update, delete."""

    def __init__(self, model: type[ModelType], session: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLModel class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def create(self, obj: ModelType) -> ModelType:
        """
        Create a new record.

        Args:
            obj: Model instance to create

        Returns:
            Created model instance
        """
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """
        Get record by ID.

        Args:
            id: Record UUID

        Returns:
            Model instance or None
        """
        result = await self.session.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalar_one_or_none()

    async def get_owned(self, id: UUID, owner_id: str) -> ModelType | None:
        """
        Get record by ID only if it belongs to ``owner_id``.

        Args:
            id: Record UUID
            owner_id: Owning user ID

        Returns:
            Model instance or None
        """
        obj = await self.get_by_id(id)
        if obj is None or getattr(obj, "owner_id", None) != owner_id:
            return None
        return obj

    async def list_by_owner(self, owner_id: str) -> list[ModelType]:
        """
        List all records owned by a user, oldest first.

        Args:
            owner_id: Owning user ID

        Returns:
            List of model instances
        """
        result = await self.session.execute(
            select(self.model)
            .where(self.model.owner_id == owner_id)  # type: ignore[attr-defined]
            .order_by(self.model.created_at)  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def update(self, obj: ModelType) -> ModelType:
        """
        Update an existing record and bump ``updated_at`` when the model has one.

        Args:
            obj: Model instance to update

        Returns:
            Updated model instance
        """
        if hasattr(obj, "updated_at"):
            obj.updated_at = utc_now()  # type: ignore[attr-defined]
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def delete(self, obj: ModelType) -> None:
        """
        Delete a record.

        Args:
            obj: Model instance to delete
        """
        await self.session.delete(obj)
        await self.session.flush()
