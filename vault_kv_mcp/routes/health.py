from datetime import datetime, timezone
import json

from fastapi import APIRouter
from fastapi.responses import Response

import hvac
import requests

from ..vault import new_vault_client


def _json_ok(payload: dict, *, status_code: int = 200) -> Response:
    """Return JSON with canonical spacing expected by health checks."""
    return Response(
        content=json.dumps(payload, ensure_ascii=False, separators=(", ", ": ")),
        media_type="application/json",
        status_code=status_code,
    )


router = APIRouter()


@router.get("/healthz")
async def healthz():
    return _json_ok({"ok": True, "time": datetime.now(timezone.utc).isoformat()})


@router.get("/livez")
async def livez():
    return _json_ok({"ok": True})


@router.get("/readyz")
async def readyz():
    vault_status = {"ok": True, "detail": "ready"}
    try:
        client = new_vault_client()
        if not client.is_authenticated():
            vault_status = {"ok": False, "detail": "Vault token unauthenticated"}
    except (hvac.exceptions.VaultError, requests.RequestException, RuntimeError) as exc:
        vault_status = {"ok": False, "detail": f"Vault error: {exc}"}

    payload = {
        "ok": vault_status["ok"],
        "time": datetime.now(timezone.utc).isoformat(),
        "vault": vault_status,
    }
    return _json_ok(payload, status_code=200 if vault_status["ok"] else 503)
