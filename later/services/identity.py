from __future__ import annotations

from dataclasses import dataclass

import httpx

from later.errors import UpstreamError


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None
    name: str | None = None
    authenticated: bool = False


def _display_name(metadata: dict) -> str | None:
    for key in ("full_name", "name"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            return value
    return None


class IdentityClient:
    """Resolves access tokens against the hosted auth service (`/auth/v1/user`)."""

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"apikey": anon_key},
            timeout=timeout,
            transport=transport,
        )

    def get_user(self, token: str) -> CurrentUser | None:
        try:
            resp = self._client.get("/auth/v1/user", headers={"Authorization": f"Bearer {token}"})
        except httpx.HTTPError as exc:
            raise UpstreamError("identity", f"Identity provider unreachable: {exc}") from exc
        if resp.status_code in (401, 403):
            return None
        if not resp.is_success:
            raise UpstreamError("identity", f"Identity provider returned {resp.status_code}")
        data = resp.json()
        user_id = data.get("id")
        if not user_id:
            return None
        return CurrentUser(
            id=str(user_id),
            email=data.get("email"),
            name=_display_name(data.get("user_metadata") or {}),
            authenticated=True,
        )

    def close(self) -> None:
        self._client.close()
