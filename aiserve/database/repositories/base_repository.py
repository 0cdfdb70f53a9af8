# ==============================================================================
# BASE REPOSITORY - Generic Data Access Abstraction
# ==============================================================================
# Repository Pattern over a unit of work's session
# All repositories of one unit of work share its transaction
# ==============================================================================

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generic,
    List,
    Optional,
    Type,
    TypeVar,
)

from sqlalchemy import func, select

if TYPE_CHECKING:
    from aiserve.database.unit_of_work.uow import UnitOfWork

ModelType = TypeVar("ModelType")


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing standard CRUD operations.

    Subclasses set ``model`` to the SQLAlchemy model they manage.
    Every call goes through the owning UnitOfWork, so a repository
    stops working (ProgrammingError) once its unit of work is released.

    Attributes:
        model: SQLAlchemy model class
        _uow: Owning unit of work

    Example:
        >>> class ModelEndpointRepository(BaseRepository[ModelEndpoint]):
        ...     model = ModelEndpoint
        ...
        >>> repo = uow.register_repository("model_endpoints", ModelEndpointRepository)
        >>> endpoint = await repo.create({"name": "sentiment", ...})
    """

    model: Type[ModelType]

    def __init__(self, uow: "UnitOfWork") -> None:
        self._uow = uow

    # ==========================================================================
    # CRUD OPERATIONS
    # ==========================================================================

    async def create(self, data: Dict[str, Any]) -> ModelType:
        """
        Create a new entity.

        Flushes so that generated values and constraint violations
        surface inside the caller's scope.

        Args:
            data: Column values

        Returns:
            Created entity with generated ID

        Raises:
            PersistenceError: If a constraint is violated
        """
        entity = self.model(**data)
        self._uow.add(entity)
        await self._uow.flush()
        await self._uow.refresh(entity)
        return entity

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Retrieve entity by primary key, or None."""
        return await self._uow.get(self.model, id)

    async def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        filters: Optional[Dict[str, Any]] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
    ) -> List[ModelType]:
        """
        Retrieve entities with pagination and equality filters.

        Args:
            skip: Number of records to skip
            limit: Maximum records to return
            filters: Column equality filters
            sort_by: Column to sort by
            sort_order: "asc" or "desc"
        """
        query = self._apply_filters(select(self.model), filters)

        if sort_by:
            column = getattr(self.model, sort_by)
            query = query.order_by(
                column.desc() if sort_order == "desc" else column.asc()
            )

        query = query.offset(skip).limit(limit)
        return await self._uow.scalars(query)

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Count entities matching equality filters."""
        query = self._apply_filters(
            select(func.count()).select_from(self.model),
            filters,
        )
        return int(await self._uow.scalar(query) or 0)

    async def update(
        self,
        id: Any,
        data: Dict[str, Any],
    ) -> Optional[ModelType]:
        """
        Update an entity's columns.

        Returns:
            Updated entity, or None if not found
        """
        entity = await self.get_by_id(id)
        if entity is None:
            return None

        for key, value in data.items():
            setattr(entity, key, value)

        await self._uow.flush()
        await self._uow.refresh(entity)
        return entity

    async def delete(self, id: Any) -> bool:
        """
        Delete an entity.

        Returns:
            True if an entity was deleted
        """
        entity = await self.get_by_id(id)
        if entity is None:
            return False
        await self._uow.delete(entity)
        await self._uow.flush()
        return True

    async def exists(self, id: Any) -> bool:
        """Check if an entity exists."""
        return await self.get_by_id(id) is not None

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    def _apply_filters(self, query: Any, filters: Optional[Dict[str, Any]]) -> Any:
        for key, value in (filters or {}).items():
            query = query.where(getattr(self.model, key) == value)
        return query
