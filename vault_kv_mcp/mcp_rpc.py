import logging
import time
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import Response

from .errors import RemoteRequestError
from .mcp_core import initialize_result, prompt_list, resource_list, tool_schemas
from .models import Principal
from .security import get_principal
from .settings import ConfigError, settings
from .vault import new_operations

router = APIRouter(prefix="/mcp", tags=["mcp"])

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
SERVER_ERROR = -32000


class MethodNotFound(Exception):
    pass


def _jsonrpc_response(id: Any, result: Any = None, error: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if error is not None:
        return {"jsonrpc": "2.0", "id": id, "error": error}
    return {"jsonrpc": "2.0", "id": id, "result": result}


async def _dispatch(method: str, params: Dict[str, Any]) -> Any:
    if method == "initialize":
        return initialize_result()
    if method in ("ping", "shutdown"):
        return {}
    if method == "tools/list":
        return {"tools": [{"name": k, **v} for k, v in tool_schemas(settings.KV_MOUNT).items()]}
    if method == "resources/list":
        return {"resources": resource_list()}
    if method == "prompts/list":
        return {"prompts": prompt_list()}
    if method == "tools/call":
        result = await new_operations().call_tool(params.get("name") or "", params.get("arguments") or {})
        return result.model_dump(exclude_none=True)
    if method == "resources/read":
        contents = await new_operations().read_resource(params.get("uri"))
        return {"contents": [c.model_dump() for c in contents]}
    if method == "prompts/get":
        prompt = await new_operations().get_prompt(params.get("name") or "", params.get("arguments") or {})
        return prompt.model_dump(exclude_none=True)
    raise MethodNotFound(method)


async def handle_message(j: Dict[str, Any], subject: str) -> Optional[Dict[str, Any]]:
    """Answer one JSON-RPC 2.0 message. Notifications (no ``id``) return None."""
    method = j.get("method"); id_ = j.get("id")
    params = j.get("params") or {}
    start = time.time()
    resp_logger = logging.getLogger("vault_kv_mcp.response")
    logging.getLogger("vault_kv_mcp.request").debug("mcp_rpc", extra={"extra": {"id": id_, "method": method, "subject": subject}})

    status = "ok"
    if j.get("jsonrpc") != "2.0" or not isinstance(method, str) or not isinstance(params, dict):
        status = "invalid"
        res = _jsonrpc_response(id_, error={"code": INVALID_REQUEST, "message": "Invalid Request"})
    elif "id" not in j:
        # notifications/initialized and friends need no answer
        resp_logger.debug("mcp_notification", extra={"extra": {"method": method, "subject": subject}})
        return None
    else:
        try:
            res = _jsonrpc_response(id_, await _dispatch(method, params))
        except MethodNotFound:
            status = "not_found"
            res = _jsonrpc_response(id_, error={"code": METHOD_NOT_FOUND, "message": "Method not found"})
        except ValueError as e:
            status = "invalid_params"
            res = _jsonrpc_response(id_, error={"code": INVALID_PARAMS, "message": str(e)})
        except (RemoteRequestError, httpx.HTTPError, ConfigError) as e:
            status = "error"
            res = _jsonrpc_response(id_, error={"code": SERVER_ERROR, "message": str(e)})

    resp_logger.info(
        "mcp_result",
        extra={"extra": {
            "id": id_,
            "method": method,
            "tool": params.get("name") if method == "tools/call" and isinstance(params, dict) else None,
            "status": status,
            "duration_ms": int((time.time() - start) * 1000),
            "subject": subject,
        }},
    )
    return res


@router.post("/rpc")
async def mcp_rpc(body: Dict[str, Any], p: Principal = Depends(get_principal)):
    res = await handle_message(body or {}, p.subject)
    if res is None:
        return Response(status_code=202)
    return res
