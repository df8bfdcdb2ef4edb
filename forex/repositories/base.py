"""
Base Repository
Create/read/update/soft-delete over one collection of the document store
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from beanie import PydanticObjectId

from forex.models.common import StoredModel

ModelT = TypeVar("ModelT", bound=StoredModel)


def active(filter: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Filter that additionally excludes soft-deleted documents"""
    query = dict(filter or {})
    query["is_deleted"] = {"$ne": True}
    return query


class BaseRepository(Generic[ModelT]):
    """
    Repository over a document store.

    The store is anything exposing insert_one/find_one/find/update_one/count
    with Mongo-style filters (MongoStore in production, a fake in tests).
    Reads never return soft-deleted documents unless asked to.
    """

    collection: str = ""
    model: Type[ModelT]

    def __init__(self, store):
        self.store = store

    def _to_model(self, document: Optional[Dict[str, Any]]) -> Optional[ModelT]:
        if document is None:
            return None
        return self.model.model_validate(document)

    async def create(self, entity: ModelT) -> ModelT:
        if entity.id is None:
            entity.id = PydanticObjectId()
        await self.store.insert_one(self.collection, entity.to_document())
        return entity

    async def find_by_id(self, id: PydanticObjectId) -> Optional[ModelT]:
        return self._to_model(await self.store.find_one(self.collection, active({"_id": id})))

    async def find_one(self, filter: Dict[str, Any]) -> Optional[ModelT]:
        return self._to_model(await self.store.find_one(self.collection, active(filter)))

    async def find(self, filter: Optional[Dict[str, Any]] = None) -> List[ModelT]:
        documents = await self.store.find(self.collection, active(filter))
        return [self.model.model_validate(document) for document in documents]

    async def find_all(self) -> List[ModelT]:
        return await self.find()

    async def find_deleted(self) -> List[ModelT]:
        documents = await self.store.find(self.collection, {"is_deleted": True})
        return [self.model.model_validate(document) for document in documents]

    async def find_many(self, ids: List[PydanticObjectId]) -> List[ModelT]:
        """Batch lookup by id; order of the result is not guaranteed"""
        return await self.find({"_id": {"$in": list(ids)}})

    async def exists(self, id: PydanticObjectId) -> bool:
        return await self.store.count(self.collection, active({"_id": id})) > 0

    async def update(self, id: PydanticObjectId, values: Dict[str, Any],
                     actor: Optional[PydanticObjectId] = None) -> bool:
        """Set fields on a non-deleted document; False when nothing matched"""
        values = dict(values)
        values["updated_at"] = datetime.utcnow()
        if actor is not None:
            values["updated_by"] = actor
        matched = await self.store.update_one(self.collection, active({"_id": id}), values)
        return matched > 0

    async def delete(self, id: PydanticObjectId, actor: Optional[PydanticObjectId] = None) -> bool:
        """Soft delete: the document stays in storage flagged as deleted"""
        now = datetime.utcnow()
        matched = await self.store.update_one(
            self.collection,
            active({"_id": id}),
            {"is_deleted": True, "deleted_by": actor, "deleted_at": now, "updated_at": now},
        )
        return matched > 0
