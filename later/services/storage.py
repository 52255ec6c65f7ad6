from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from urllib.parse import parse_qs, quote, urlsplit

import httpx

from later.errors import UpstreamError

logger = logging.getLogger(__name__)

PREVIEW_URL_TTL_SEC = 60 * 60

_UNSAFE_NAME_RE = re.compile(r"[^\w.\- ]+")


@dataclass(frozen=True)
class SignedUpload:
    signed_url: str
    token: str | None


def build_storage_path(user_id: str, file_name: str) -> str:
    safe_name = _UNSAFE_NAME_RE.sub("_", file_name)
    return f"{user_id}/{uuid.uuid4()}-{safe_name}"


class StorageClient:
    """Signed-URL issuance against the hosted object storage API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._client = httpx.Client(
            base_url=f"{self._base_url}/storage/v1",
            headers={"apikey": service_key, "Authorization": f"Bearer {service_key}"},
            timeout=timeout,
            transport=transport,
        )

    def _object_path(self, path: str) -> str:
        return f"{quote(self._bucket)}/{quote(path)}"

    def _post(self, url: str, payload: dict) -> dict:
        try:
            resp = self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise UpstreamError("storage", f"Blob store unreachable: {exc}") from exc
        if not resp.is_success:
            raise UpstreamError("storage", f"Blob store returned {resp.status_code}")
        return resp.json()

    def create_signed_upload(self, path: str) -> SignedUpload:
        data = self._post(f"/object/upload/sign/{self._object_path(path)}", {})
        relative = data.get("url")
        if not relative:
            raise UpstreamError("storage", "Blob store returned no upload URL")
        token = parse_qs(urlsplit(relative).query).get("token", [None])[0]
        return SignedUpload(signed_url=f"{self._base_url}/storage/v1{relative}", token=token)

    def create_signed_url(self, path: str, expires_in: int = PREVIEW_URL_TTL_SEC) -> str | None:
        data = self._post(f"/object/sign/{self._object_path(path)}", {"expiresIn": expires_in})
        relative = data.get("signedURL") or data.get("signedUrl")
        if not relative:
            return None
        return f"{self._base_url}/storage/v1{relative}"

    def close(self) -> None:
        self._client.close()
