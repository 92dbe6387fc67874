"""Source store backed by a Supabase Storage bucket."""

from typing import Any, Dict, List, Optional

import httpx

from advocate_etl.core.exceptions import StorageError
from advocate_etl.services.storage.source_store import is_source_file
from advocate_etl.utils.logging import get_logger

LOGGER = get_logger(__name__)

LIST_PAGE_SIZE = 1000


class SupabaseSourceStore:
    """Source files under a bucket prefix, quarantined under ``<prefix>failed/``."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        bucket: str,
        prefix: str = "users/",
        quarantine_dir: str = "failed",
        timeout: int = 60,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url.rstrip("/")
        self.base_api_url = f"{self.url}/storage/v1"
        self.bucket = bucket
        self.prefix = prefix if not prefix or prefix.endswith("/") else f"{prefix}/"
        self.quarantine_prefix = f"{self.prefix}{quarantine_dir}/"
        self.timeout = timeout
        self.headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }
        self._client = client

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(headers=self.headers, timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_api_url}{path}"
        try:
            response = await self._http().request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            LOGGER.error(f"Supabase storage request failed: {str(e)}", exc_info=True)
            raise StorageError(f"Storage request error: {str(e)}", original_error=e)

        if response.status_code >= 400:
            LOGGER.error(
                f"Supabase storage returned an error: {response.text}",
                extra={"bucket": self.bucket, "path": path, "status_code": response.status_code}
            )
            raise StorageError(f"Storage request failed ({response.status_code}): {response.text}")
        return response

    async def list_files(self) -> List[str]:
        """List source file names under the prefix, sorted."""
        names: List[str] = []
        offset = 0
        while True:
            response = await self._request(
                "POST",
                f"/object/list/{self.bucket}",
                json={
                    "prefix": self.prefix,
                    "limit": LIST_PAGE_SIZE,
                    "offset": offset,
                    "sortBy": {"column": "name", "order": "asc"},
                },
            )
            page: List[Dict[str, Any]] = response.json()
            names.extend(item["name"] for item in page if is_source_file(item.get("name", "")))
            if len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE

        return sorted(names)

    async def read_file(self, file_name: str) -> str:
        response = await self._request("GET", f"/object/{self.bucket}/{self.prefix}{file_name}")
        return response.text

    async def delete_file(self, file_name: str) -> None:
        await self._request(
            "DELETE",
            f"/object/{self.bucket}",
            json={"prefixes": [f"{self.prefix}{file_name}"]},
        )

    async def move_to_quarantine(self, file_name: str) -> str:
        destination = f"{self.quarantine_prefix}{file_name}"
        await self._request(
            "POST",
            "/object/move",
            json={
                "bucketId": self.bucket,
                "sourceKey": f"{self.prefix}{file_name}",
                "destinationKey": destination,
            },
        )
        LOGGER.info(f"Moved {file_name} to quarantine", extra={"path": destination})
        return f"{self.bucket}/{destination}"

    async def delete_quarantined(self, file_name: str) -> bool:
        response = await self._request(
            "DELETE",
            f"/object/{self.bucket}",
            json={"prefixes": [f"{self.quarantine_prefix}{file_name}"]},
        )
        # Supabase answers with the list of objects actually removed
        return bool(response.json())
