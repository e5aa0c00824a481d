from typing import Any, Dict, List
from urllib.parse import quote

from .transport import VaultTransport


class PolicyStore:
    """ACL policies under ``sys/policies/acl``."""

    def __init__(self, transport: VaultTransport) -> None:
        self.transport = transport

    async def put(self, name: str, policy: str) -> Any:
        # Full replace; replaying the same call leaves Vault in the same state
        return await self.transport.request("PUT", f"sys/policies/acl/{quote(name, safe='')}", {"policy": policy})

    async def list(self) -> Any:
        return await self.transport.request("GET", "sys/policies/acl")


def split_capabilities(capabilities: str) -> List[str]:
    return [c.strip() for c in capabilities.split(",")]


def generate_policy_draft(path: str, capabilities: str) -> Dict[str, Any]:
    """Single-path policy skeleton, e.g. ``{"path": {"secret/data/x": {"capabilities": ["read"]}}}``."""
    return {"path": {path: {"capabilities": split_capabilities(capabilities)}}}
