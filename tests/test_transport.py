import httpx
import pytest

from fake_vault import run
from vault_kv_mcp.errors import RemoteRequestError
from vault_kv_mcp.transport import VaultTransport


def _capture(status=200, json=None):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if json is None:
            return httpx.Response(status)
        return httpx.Response(status, json=json)

    return seen, httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_trailing_slash_stripped_once():
    t = VaultTransport("http://vault.test:8200/", "hvs.x")
    assert t.url_for("secret/data/a") == "http://vault.test:8200/v1/secret/data/a"
    t2 = VaultTransport("http://vault.test:8200//", "hvs.x")
    assert t2.base_url == "http://vault.test:8200/"


def test_empty_token_rejected():
    with pytest.raises(ValueError):
        VaultTransport("http://vault.test:8200", "")


def test_get_sends_token_and_no_body():
    seen, client = _capture(json={"data": {"ok": True}})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    res = run(t.request("GET", "secret/data/a"))
    assert res == {"data": {"ok": True}}
    req = seen[0]
    assert req.headers["X-Vault-Token"] == "hvs.abc"
    assert "content-type" not in req.headers
    assert req.content == b""
    assert str(req.url) == "http://vault.test:8200/v1/secret/data/a"


def test_post_sends_json_body():
    seen, client = _capture(json={"data": {"version": 1}})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    run(t.request("POST", "secret/data/a", {"data": {"k": "v"}}))
    req = seen[0]
    assert req.headers["Content-Type"] == "application/json"
    assert req.content == b'{"data": {"k": "v"}}'


def test_namespace_header_and_params():
    seen, client = _capture(json={"data": {}})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", namespace="team-a", client=client)
    run(t.request("GET", "secret/metadata/app", params={"list": "true"}))
    req = seen[0]
    assert req.headers["X-Vault-Namespace"] == "team-a"
    assert req.url.params["list"] == "true"


def test_no_content_returns_none():
    _, client = _capture(status=204)
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    assert run(t.request("DELETE", "secret/metadata/a")) is None


def test_error_joins_remote_messages():
    _, client = _capture(status=400, json={"errors": ["bad thing", "worse thing"]})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    with pytest.raises(RemoteRequestError) as ei:
        run(t.request("POST", "secret/data/a", {"data": {}}))
    err = ei.value
    assert str(err) == "POST secret/data/a failed with 400: bad thing; worse thing"
    assert err.status == 400 and err.method == "POST" and err.path == "secret/data/a"


def test_error_without_parsable_body_uses_base_message():
    def handler(request):
        return httpx.Response(500, content=b"<html>oops</html>")

    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(RemoteRequestError) as ei:
        run(t.request("GET", "sys/policies/acl"))
    assert str(ei.value) == "GET sys/policies/acl failed with 500"
    assert ei.value.errors == []


def test_permission_denied_message_has_status_and_reason():
    _, client = _capture(status=403, json={"errors": ["permission denied"]})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    with pytest.raises(RemoteRequestError) as ei:
        run(t.request("GET", "secret/data/app/config"))
    assert "403" in str(ei.value)
    assert "permission denied" in str(ei.value)


def test_network_failure_propagates():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(httpx.ConnectError):
        run(t.request("GET", "secret/data/a"))


def test_one_exchange_per_call_even_on_failure():
    seen, client = _capture(status=503, json={"errors": ["sealed"]})
    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=client)
    with pytest.raises(RemoteRequestError):
        run(t.request("GET", "secret/data/a"))
    assert len(seen) == 1


def test_success_with_non_json_body_is_remote_error():
    def handler(request):
        return httpx.Response(200, content=b"<html>proxy login</html>")

    t = VaultTransport("http://vault.test:8200", "hvs.abc", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(RemoteRequestError) as ei:
        run(t.request("GET", "sys/policies/acl"))
    assert ei.value.status == 200
    assert str(ei.value) == "GET sys/policies/acl failed with 200: response body is not valid JSON"
