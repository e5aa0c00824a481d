"""KV v2 operations against a single mount.

Paths passed in are relative to the mount; the ``data``/``metadata``/``delete``
segment is added here depending on the operation.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from .errors import MissingVersionError
from .models import KvMetadataResponse
from .transport import VaultTransport

log = logging.getLogger("vault_kv_mcp.vault")


class KVStore:
    def __init__(self, transport: VaultTransport, mount: str = "secret") -> None:
        self.transport = transport
        self.mount = mount.strip("/")

    def data_path(self, path: str) -> str:
        return f"{self.mount}/data/{path}"

    def metadata_path(self, path: str) -> str:
        return f"{self.mount}/metadata/{path}" if path else f"{self.mount}/metadata"

    async def write(self, path: str, data: Dict[str, Any]) -> Any:
        return await self.transport.request("POST", self.data_path(path), {"data": data})

    async def read(self, path: str) -> Any:
        return await self.transport.request("GET", self.data_path(path))

    async def read_metadata(self, path: str) -> Any:
        return await self.transport.request("GET", self.metadata_path(path))

    async def list(self, path: str = "") -> Any:
        if path.endswith("/"):
            path = path[:-1]
        return await self.transport.request("GET", self.metadata_path(path), params={"list": "true"})

    async def delete(self, path: str) -> Any:
        return await self.delete_path(self.data_path(path))

    async def delete_path(self, api_path: str) -> Any:
        """Soft-delete the latest version of a secret.

        KV v2 has no "delete latest" call, so the current version is looked up
        first and then marked deleted. The two requests are not atomic: a write
        landing in between means the previous version is the one deleted.

        If the metadata has no usable ``current_version`` the whole metadata
        entry (every version and its history) is deleted instead. Paths outside
        ``<mount>/data/`` are deleted as given.
        """
        prefix = f"{self.mount}/data/"
        if not api_path.startswith(prefix):
            return await self.transport.request("DELETE", api_path)

        rel = api_path[len(prefix):]
        try:
            version = await self._current_version(rel)
        except MissingVersionError:
            log.warning(
                "kv_delete_fallback_metadata",
                extra={"extra": {"mount": self.mount, "path": rel, "reason": "no current_version"}},
            )
            return await self.transport.request("DELETE", self.metadata_path(rel))
        return await self.transport.request("POST", f"{self.mount}/delete/{rel}", {"versions": [version]})

    async def _current_version(self, path: str) -> int:
        raw: Optional[Any] = await self.read_metadata(path)
        try:
            meta = KvMetadataResponse.model_validate(raw if isinstance(raw, dict) else {})
        except ValidationError as exc:
            raise MissingVersionError(path) from exc
        version = meta.usable_version()
        if version is None:
            raise MissingVersionError(path)
        return version
