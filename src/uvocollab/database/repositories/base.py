"""Generic repository over a single Cosmos DB container."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar, cast

from azure.cosmos.exceptions import CosmosResourceNotFoundError

from uvocollab.models.base import DocumentBase, utcnow

if TYPE_CHECKING:
    from azure.cosmos.aio import DatabaseProxy

T = TypeVar("T", bound=DocumentBase)


class BaseRepository(Generic[T]):
    """CRUD helpers shared by every container; deletes are soft."""

    container_name: ClassVar[str]
    model_class: type[T]

    def __init__(self, database: DatabaseProxy) -> None:
        self._container = database.get_container_client(self.container_name)

    @staticmethod
    def _to_body(item: T) -> dict[str, Any]:
        return item.model_dump(mode="json", exclude_none=True)

    async def create(self, item: T) -> T:
        await self._container.create_item(body=self._to_body(item))
        return item

    async def get(self, item_id: str, partition_key: str) -> T | None:
        """Fetch a document by id, hiding soft-deleted ones."""
        try:
            data = cast(
                "dict[str, Any]",
                await self._container.read_item(item=item_id, partition_key=partition_key),
            )
        except CosmosResourceNotFoundError:
            return None
        if data.get("deleted_at") is not None:
            return None
        return self.model_class.model_validate(data)

    async def update(self, item: T, partition_key: str) -> T:  # noqa: ARG002
        item.updated_at = utcnow()
        await self._container.replace_item(item=item.id, body=self._to_body(item))
        return item

    async def soft_delete(self, item: T, partition_key: str) -> T:
        item.deleted_at = utcnow()
        return await self.update(item, partition_key)

    async def query(
        self,
        query: str,
        parameters: list[dict[str, Any]] | None = None,
    ) -> list[T]:
        """Run a SQL query and validate each result into the model class."""
        results: list[T] = []
        async for item in self._container.query_items(
            query=query,
            parameters=parameters or [],
        ):
            results.append(self.model_class.model_validate(item))
        return results
