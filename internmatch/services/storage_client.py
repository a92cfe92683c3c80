"""
Supabase Storage client (REST over httpx).

Calls used by the service:
- issue_upload_url(path)            -> {"url", "token"} for a direct browser upload
- issue_access_url(path, expires)   -> time-limited signed download URL
- remove(paths)                     -> delete objects
- bucket_info()                     -> bucket metadata (connectivity check)

Transport errors and non-2xx responses surface as DependencyFailure.
"""

import logging
from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlsplit

import httpx

from internmatch.core.config import Settings, get_settings
from internmatch.core.errors import DependencyFailure

logger = logging.getLogger(__name__)


class SupabaseStorageClient:

    def __init__(self, settings: Optional[Settings] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings or get_settings()
        self.bucket = self.settings.resume_bucket
        self.base_url = self.settings.storage_base_url
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.settings.supabase_service_key}",
                "apikey": self.settings.supabase_service_key,
            },
            timeout=self.settings.storage_timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Storage %s %s failed: %s", method, url, e)
            raise DependencyFailure("Storage service unavailable")
        if not response.content:
            return {}
        return response.json()

    def _absolute(self, relative: str) -> str:
        if relative.startswith("http://") or relative.startswith("https://"):
            return relative
        return f"{self.base_url}/{relative.lstrip('/')}"

    def issue_upload_url(self, path: str) -> Dict[str, str]:
        """Signed upload URL for `path`; the object is overwritten if it exists."""
        data = self._request("POST", f"/object/upload/sign/{self.bucket}/{path}")
        url = self._absolute(data.get("url", ""))
        token = data.get("token") or parse_qs(urlsplit(url).query).get("token", [""])[0]
        if not token:
            raise DependencyFailure("Storage returned no upload token")
        if "upsert=true" not in url:
            url += ("&" if "?" in url else "?") + "upsert=true"
        return {"url": url, "token": token}

    def issue_access_url(self, path: str, expires_in: int) -> str:
        data = self._request(
            "POST",
            f"/object/sign/{self.bucket}/{path}",
            json={"expiresIn": expires_in},
        )
        signed = data.get("signedURL") or data.get("signedUrl")
        if not signed:
            raise DependencyFailure("Storage returned no signed URL")
        return self._absolute(signed)

    def bucket_info(self) -> dict:
        """Metadata of the resume bucket; also proves the service key is accepted."""
        return self._request("GET", f"/bucket/{self.bucket}")

    def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        self._request("DELETE", f"/object/{self.bucket}", json={"prefixes": list(paths)})
