import io
import json

import pytest


def _lines(*msgs):
    return io.StringIO("".join((m if isinstance(m, str) else json.dumps(m)) + "\n" for m in msgs))


def test_stdio_session(capsys, wired_vault):
    from vault_kv_mcp.stdio import serve

    serve(_lines(
        {"jsonrpc": "2.0", "id": 1, "method": "initialize"},
        {"jsonrpc": "2.0", "method": "notifications/initialized"},
        "",
        {"jsonrpc": "2.0", "id": 2, "method": "tools/call", "params": {"name": "create_secret", "arguments": {"path": "app/config", "data": {"username": "demo"}}}},
        {"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": {"name": "read_secret", "arguments": {"path": "app/config"}}},
        "{not json",
        {"jsonrpc": "2.0", "id": 99, "method": "shutdown"},
        {"jsonrpc": "2.0", "id": 100, "method": "initialize"},
    ))
    captured = capsys.readouterr()
    out = [json.loads(line) for line in captured.out.splitlines()]
    assert [o["id"] for o in out] == [1, 2, 3, None, 99]
    assert out[0]["result"]["serverInfo"]["name"] == "vault-mcp"
    assert out[2]["result"]["structuredContent"] == {"username": "demo"}
    assert out[3]["error"]["code"] == -32700
    assert "vault mcp server running via stdio" in captured.err


def test_stdio_requires_token(monkeypatch, capsys):
    from vault_kv_mcp import stdio
    from vault_kv_mcp.settings import settings

    monkeypatch.setattr(settings, "VAULT_TOKEN", None)
    with pytest.raises(SystemExit) as ei:
        stdio.main()
    assert ei.value.code == 1
    assert "Failed to start server: VAULT_TOKEN is required" in capsys.readouterr().err


def test_stdio_bad_resource_uri_keeps_serving(capsys, wired_vault):
    from vault_kv_mcp.stdio import serve

    serve(_lines(
        {"jsonrpc": "2.0", "id": 1, "method": "resources/read", "params": {"uri": 5}},
        {"jsonrpc": "2.0", "id": 2, "method": "initialize"},
    ))
    out = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [o["id"] for o in out] == [1, 2]
    assert out[0]["error"]["code"] == -32602
    assert out[1]["result"]["serverInfo"]["name"] == "vault-mcp"


def test_stdio_unexpected_error_is_internal_error(capsys, monkeypatch, wired_vault):
    from vault_kv_mcp import mcp_rpc
    from vault_kv_mcp.stdio import serve

    real = mcp_rpc.handle_message

    async def flaky(msg, subject):
        if msg.get("method") == "ping":
            raise RuntimeError("boom")
        return await real(msg, subject)

    monkeypatch.setattr(mcp_rpc, "handle_message", flaky)
    serve(_lines(
        {"jsonrpc": "2.0", "id": 1, "method": "ping"},
        {"jsonrpc": "2.0", "id": 2, "method": "initialize"},
    ))
    out = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert out[0]["id"] == 1
    assert out[0]["error"] == {"code": -32603, "message": "Internal error: boom"}
    assert out[1]["result"]["protocolVersion"] == "2025-06-18"
