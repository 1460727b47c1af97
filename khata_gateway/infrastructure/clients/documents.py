"""Document store HTTP client for ledger entry attachments"""

import httpx
from khata_gateway.domain.models import Attachment
from khata_gateway.domain.exceptions import DocumentStoreError
from khata_gateway.config import settings
from khata_gateway.infrastructure.observability.metrics import document_upload_failures_counter


class DocumentStoreClient:
    """Client for the external document/object store"""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.document_store_base
        self.timeout = timeout or settings.http_timeout_seconds

    async def upload(
        self,
        shop_id: str,
        file_name: str,
        content: bytes,
        content_type: str,
        description: str | None = None,
    ) -> Attachment:
        """
        Upload a blob and return the opaque reference the ledger stores.

        Not retried: a blind retry can leave orphaned blobs behind.

        Raises:
            DocumentStoreError: On timeout, HTTP errors, or invalid response
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(
                    f"{self.base_url}/documents",
                    data={"shop_id": shop_id},
                    files={"file": (file_name, content, content_type)},
                )
                response.raise_for_status()
                data = response.json()

                return Attachment(
                    storage_path=data["storage_path"],
                    file_name=data.get("file_name", file_name),
                    file_type=data.get("file_type", content_type),
                    description=description,
                )

            except httpx.TimeoutException as e:
                document_upload_failures_counter.inc()
                raise DocumentStoreError(f"Document store timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                document_upload_failures_counter.inc()
                raise DocumentStoreError(f"Document store error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                document_upload_failures_counter.inc()
                raise DocumentStoreError(f"Document store unreachable: {e}") from e
            except (KeyError, ValueError, TypeError) as e:
                document_upload_failures_counter.inc()
                raise DocumentStoreError(f"Invalid response from document store: {e}") from e
