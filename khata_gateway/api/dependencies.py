"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from khata_gateway.infrastructure.clients.documents import DocumentStoreClient
from khata_gateway.infrastructure.clients.reminders import ReminderClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(request: Request) -> str:
    """User performing the write, as forwarded by the auth proxy"""
    return request.headers.get("X-User-ID", "anonymous")


def get_document_client() -> DocumentStoreClient:
    """Provide document store client instance"""
    return DocumentStoreClient()


def get_reminder_client() -> ReminderClient:
    """Provide messaging webhook client instance"""
    return ReminderClient()
