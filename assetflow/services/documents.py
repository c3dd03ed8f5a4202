"""Document management service."""

from datetime import datetime
from typing import Any, Dict, Optional

from assetflow.errors import AssetflowError
from assetflow.services.base import BaseService, OptionsLike, eq, merge_options
from assetflow.storage.client import ChangeCallback, OrderBy, QueryResult, Subscription

NEWEST_UPLOAD_FIRST = OrderBy(column="uploaded_date", ascending=False)


class DocumentService(BaseService):
    """Accessors for documents and the verification queue."""

    async def get_all_documents(self, options: OptionsLike = None) -> QueryResult:
        defaults = {"order_by": {"column": "uploaded_date", "ascending": False}}
        return await self.db.query("documents", "select", merge_options(defaults, options))

    async def get_document_by_id(self, document_id: str) -> QueryResult:
        return await self._get_one("documents", "id", document_id)

    async def create_document(self, document_data: Dict[str, Any]) -> QueryResult:
        return await self._insert(
            "documents",
            document_data,
            stamps=("uploaded_date", "created_at", "updated_at"),
        )

    async def update_document(self, document_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("documents", document_id, update_data)

    async def verify_document(
        self,
        document_id: str,
        verified_by: str,
        status: str,
        rejection_reason: Optional[str] = None,
    ) -> QueryResult:
        """Record a verification decision; the reason is kept only for rejections."""
        update_data = {
            "status": status,
            "verified_by": verified_by,
            "verified_date": datetime.utcnow(),
        }
        if status == "rejected" and rejection_reason:
            update_data["rejection_reason"] = rejection_reason
        return await self.update_document(document_id, update_data)

    async def archive_document(self, document_id: str) -> QueryResult:
        return await self.update_document(document_id, {"status": "archived"})

    async def get_documents_by_status(self, status: str) -> QueryResult:
        return await self._select("documents", [eq("status", status)], NEWEST_UPLOAD_FIRST)

    async def get_documents_by_type(self, document_type: str) -> QueryResult:
        return await self._select("documents", [eq("document_type", document_type)], NEWEST_UPLOAD_FIRST)

    async def get_documents_by_category(self, category: str) -> QueryResult:
        return await self._select("documents", [eq("category", category)], NEWEST_UPLOAD_FIRST)

    async def get_verification_queue(self) -> QueryResult:
        return await self._select(
            "verification_queue",
            [eq("status", "pending")],
            OrderBy(column="priority", ascending=False),
        )

    async def add_to_verification_queue(
        self,
        document_id: str,
        priority: str = "medium",
        assigned_to: Optional[str] = None,
    ) -> QueryResult:
        return await self._insert(
            "verification_queue",
            {
                "document_id": document_id,
                "priority": priority,
                "assigned_to": assigned_to,
                "status": "pending",
            },
            stamps=("created_at", "updated_at"),
        )

    async def update_verification_queue(self, queue_id: str, update_data: Dict[str, Any]) -> QueryResult:
        return await self._update("verification_queue", queue_id, update_data)

    async def get_document_stats(self) -> QueryResult:
        try:
            data = {
                "total_documents": await self._count("documents"),
                "verified_documents": await self._count("documents", [eq("status", "verified")]),
                "pending_verification": await self._count("documents", [eq("status", "pending_verification")]),
                "archived_documents": await self._count("documents", [eq("status", "archived")]),
            }
        except AssetflowError as e:
            return QueryResult.failure(e)
        return QueryResult(data=data)

    def subscribe_to_documents(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("documents", callback)

    def subscribe_to_verification_queue(self, callback: ChangeCallback) -> Optional[Subscription]:
        return self.db.subscribe("verification_queue", callback)
