from typing import Optional

import httpx
import hvac

from .kv import KVStore
from .mcp_core import VaultOperations
from .policies import PolicyStore
from .settings import Settings, settings, require_vault_config
from .transport import VaultTransport


def new_vault_client() -> hvac.Client:
    s = require_vault_config()
    client = hvac.Client(url=s.VAULT_ADDR, token=s.VAULT_TOKEN, namespace=s.VAULT_NAMESPACE or None)
    return client


def new_transport(s: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> VaultTransport:
    s = require_vault_config(s or settings)
    return VaultTransport(
        s.VAULT_ADDR,
        s.VAULT_TOKEN,
        namespace=s.VAULT_NAMESPACE,
        timeout=s.VAULT_TIMEOUT_SECONDS,
        client=client,
    )


def new_operations(s: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None) -> VaultOperations:
    s = s or settings
    transport = new_transport(s, client)
    return VaultOperations(KVStore(transport, mount=s.KV_MOUNT), PolicyStore(transport))
