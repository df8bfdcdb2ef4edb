"""
Request Repository
Typed access for transitions and raw document access for population
"""
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId

from forex.models.request import ForexRequest
from forex.repositories.base import BaseRepository, active


class RequestRepository(BaseRepository[ForexRequest]):
    collection = "requests"
    model = ForexRequest

    async def find_documents(self, filter: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Non-deleted raw documents, the first stage of every populated read"""
        return await self.store.find(self.collection, active(filter))

    async def find_document(self, id: PydanticObjectId) -> Optional[Dict[str, Any]]:
        return await self.store.find_one(self.collection, active({"_id": id}))

    async def code_exists(self, request_code: str) -> bool:
        """Codes stay reserved even after the request is soft deleted"""
        return await self.store.count(self.collection, {"request_code": request_code}) > 0
