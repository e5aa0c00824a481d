import logging
from fastapi import Depends, Query, Request, Response
from .utils import Router as APIRouter
from ..errors import RemoteRequestError
from ..models import KvReadResponse, ListResponse, Principal, SecretRead, SecretWrite
from ..security import get_principal
from ..vault import new_operations

router = APIRouter(prefix="/secrets", tags=["kv"])
log = logging.getLogger("vault_kv_mcp.response")


def _secret_read(raw) -> SecretRead:
    envelope = KvReadResponse.model_validate(raw or {})
    d = envelope.data
    meta = (d.metadata if d else None) or {}
    return SecretRead(data=(d.data if d else None) or {}, version=meta.get("version"), created_time=meta.get("created_time"))


@router.put("/{path:path}", response_model=SecretRead)
async def put_secret(path: str, body: SecretWrite, request: Request, p: Principal = Depends(get_principal)):
    kv = new_operations().kv
    await kv.write(path, body.data)
    res = _secret_read(await kv.read(path))
    log.info("kv_put", extra={"extra": {"subject": p.subject, "path": path, "keys": list(res.data.keys()), "version": res.version, "request_id": request.headers.get("x-request-id")}})
    return res


@router.get("/{path:path}", response_model=SecretRead)
async def get_secret(path: str, request: Request, p: Principal = Depends(get_principal)):
    res = _secret_read(await new_operations().kv.read(path))
    log.info("kv_get", extra={"extra": {"subject": p.subject, "path": path, "keys": list(res.data.keys()), "version": res.version, "request_id": request.headers.get("x-request-id")}})
    return res


@router.delete("/{path:path}", status_code=204)
async def delete_secret(path: str, request: Request, p: Principal = Depends(get_principal)):
    await new_operations().kv.delete(path)
    log.info("kv_delete", extra={"extra": {"subject": p.subject, "path": path, "request_id": request.headers.get("x-request-id")}})
    return Response(status_code=204)


@router.get("", summary="List keys under a prefix")
async def list_secrets(request: Request, prefix: str = Query(""), p: Principal = Depends(get_principal)):
    try:
        keys = ListResponse.model_validate(await new_operations().kv.list(prefix) or {}).key_list()
    except RemoteRequestError as exc:
        # Vault answers 404 for a prefix with nothing under it
        if exc.status != 404:
            raise
        keys = []
    log.info("kv_list", extra={"extra": {"subject": p.subject, "prefix": prefix, "count": len(keys), "request_id": request.headers.get("x-request-id")}})
    return {"keys": keys}
