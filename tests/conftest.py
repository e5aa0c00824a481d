import os
import sys
import tempfile
from pathlib import Path
import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so 'vault_kv_mcp' is importable
repo_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(repo_root))

# Settings are read once at import; pin them before any test module imports the package
os.environ["VAULT_ADDR"] = "http://vault.test:8200/"
os.environ["VAULT_TOKEN"] = "hvs.test-token"
os.environ["KV_MOUNT"] = "secret"
os.environ["AUTH_API_KEY_ENABLED"] = "false"
os.environ["API_KEYS_JSON"] = '{"dev-key":"agent_api"}'
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="vault-kv-mcp-logs-"))

from fake_vault import FakeVault  # noqa: E402


@pytest.fixture()
def fake_vault():
    return FakeVault()


@pytest.fixture()
def transport(fake_vault):
    from vault_kv_mcp.transport import VaultTransport
    return VaultTransport("http://vault.test:8200/", fake_vault.token, client=fake_vault.client())


@pytest.fixture()
def ops(fake_vault):
    from vault_kv_mcp.vault import new_operations
    return new_operations(client=fake_vault.client())


@pytest.fixture(scope="session")
def app():
    from vault_kv_mcp.app import create_app
    return create_app()


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def wired_vault(fake_vault, monkeypatch):
    """Route every Vault call made by the HTTP surfaces to the fake."""
    import vault_kv_mcp.mcp_rpc as mcp_rpc
    import vault_kv_mcp.routes.policies as policies_route
    import vault_kv_mcp.routes.secrets as secrets_route
    from vault_kv_mcp import vault

    def factory():
        return vault.new_operations(client=fake_vault.client())

    for mod in (mcp_rpc, secrets_route, policies_route):
        monkeypatch.setattr(mod, "new_operations", factory)
    return fake_vault
