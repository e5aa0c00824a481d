import logging
from fastapi import Depends, Request, Response
from .utils import Router as APIRouter
from ..models import GeneratePolicyArgs, Principal, PolicyWrite
from ..policies import generate_policy_draft
from ..security import get_principal
from ..vault import new_operations

router = APIRouter(prefix="/policies", tags=["policies"])
log = logging.getLogger("vault_kv_mcp.response")


@router.get("")
async def list_policies(p: Principal = Depends(get_principal)):
    return await new_operations().policies.list()


@router.put("/{name:path}", status_code=204)
async def put_policy(name: str, body: PolicyWrite, request: Request, p: Principal = Depends(get_principal)):
    await new_operations().policies.put(name, body.policy)
    log.info("policy_put", extra={"extra": {"subject": p.subject, "name": name, "request_id": request.headers.get("x-request-id")}})
    return Response(status_code=204)


@router.post("/draft")
async def draft_policy(body: GeneratePolicyArgs):
    return generate_policy_draft(body.path, body.capabilities)
