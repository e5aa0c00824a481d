import json
import logging
import time
from typing import Any, Dict, Optional

import httpx
from prometheus_client import Counter

from .errors import RemoteRequestError

log = logging.getLogger("vault_kv_mcp.vault")

# Registered into each app registry by create_app()
VAULT_REQUESTS = Counter(
    "vault_requests_total",
    "Requests sent to Vault",
    labelnames=("method", "status"),
    registry=None,
)


def _error_messages(response: httpx.Response) -> list:
    try:
        payload = response.json()
    except ValueError:
        return []
    errors = payload.get("errors") if isinstance(payload, dict) else None
    if not isinstance(errors, list):
        return []
    return [str(e) for e in errors]


class VaultTransport:
    """One authenticated JSON exchange with the Vault HTTP API per call.

    ``client`` may be a shared ``httpx.AsyncClient``; when omitted a client is
    opened and closed around every request. No retries are attempted.
    """

    def __init__(
        self,
        address: str,
        token: str,
        *,
        namespace: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not token:
            raise ValueError("Vault token is required")
        self.base_url = address[:-1] if address.endswith("/") else address
        self._token = token
        self._namespace = namespace
        self._timeout = timeout
        self._client = client

    def url_for(self, api_path: str) -> str:
        return f"{self.base_url}/v1/{api_path}"

    async def request(
        self,
        method: str,
        api_path: str,
        body: Any = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Any:
        headers = {"X-Vault-Token": self._token}
        if self._namespace:
            headers["X-Vault-Namespace"] = self._namespace
        kwargs: Dict[str, Any] = {"headers": headers}
        if params:
            kwargs["params"] = params
        if body is not None:
            headers["Content-Type"] = "application/json"
            kwargs["content"] = json.dumps(body)
        if self._timeout is not None:
            kwargs["timeout"] = self._timeout

        url = self.url_for(api_path)
        start = time.time()
        if self._client is not None:
            response = await self._client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.request(method, url, **kwargs)

        VAULT_REQUESTS.labels(method, str(response.status_code)).inc()
        log.debug(
            "vault_request",
            extra={"extra": {
                "method": method,
                "path": api_path,
                "status": response.status_code,
                "duration_ms": int((time.time() - start) * 1000),
            }},
        )

        if not response.is_success:
            raise RemoteRequestError(method, api_path, response.status_code, _error_messages(response))
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise RemoteRequestError(method, api_path, response.status_code, ["response body is not valid JSON"])
