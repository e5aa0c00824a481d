import json
import logging
from typing import Any, Dict, List, Optional

from .kv import KVStore
from .models import (
    CreatePolicyArgs,
    CreateSecretArgs,
    GeneratePolicyArgs,
    KvReadResponse,
    ListResponse,
    PathArgs,
    PromptMessage,
    PromptResult,
    ReadResourceArgs,
    ResourceContent,
    TextContent,
    ToolResult,
)
from .policies import PolicyStore, generate_policy_draft

log = logging.getLogger("vault_kv_mcp.response")

# Date-stamped protocol version
MCP_PROTOCOL_VERSION = "2025-06-18"
SERVER_NAME = "vault-mcp"
SERVER_VERSION = "1.0.0"

SECRETS_URI = "vault://secrets"
POLICIES_URI = "vault://policies"


def tool_schemas(mount: str = "secret") -> Dict[str, Dict[str, Any]]:
    return {
        "create_secret": {
            "description": f"Create or update a secret at {mount}/data/{{path}} in Vault KV v2.",
            "inputSchema": {
                "type": "object",
                "properties": {"path": {"type": "string"}, "data": {"type": "object"}},
                "required": ["path", "data"],
                "additionalProperties": False,
            },
        },
        "read_secret": {
            "description": f"Read a secret at {mount}/data/{{path}} from Vault KV v2.",
            "inputSchema": {
                "type": "object",
                "properties": {"path": {"type": "string"}},
                "required": ["path"],
                "additionalProperties": False,
            },
        },
        "delete_secret": {
            "description": f"Soft-delete the latest version of a secret at {mount}/data/{{path}} (KV v2).",
            "inputSchema": {
                "type": "object",
                "properties": {"path": {"type": "string"}},
                "required": ["path"],
                "additionalProperties": False,
            },
        },
        "create_policy": {
            "description": "Create or replace a Vault policy with the given name and HCL policy string.",
            "inputSchema": {
                "type": "object",
                "properties": {"name": {"type": "string"}, "policy": {"type": "string"}},
                "required": ["name", "policy"],
                "additionalProperties": False,
            },
        },
    }


def resource_list() -> List[Dict[str, Any]]:
    return [
        {
            "uri": SECRETS_URI,
            "name": "vault_secrets",
            "mimeType": "application/json",
            "description": "Keys at the root of the KV v2 mount (empty when unavailable).",
        },
        {
            "uri": POLICIES_URI,
            "name": "vault_policies",
            "mimeType": "application/json",
            "description": "ACL policy names.",
        },
    ]


def prompt_list() -> List[Dict[str, Any]]:
    return [
        {
            "name": "generate_policy",
            "description": "Draft a single-path policy from a comma-separated capability list.",
            "arguments": [
                {"name": "path", "required": True},
                {"name": "capabilities", "required": True},
            ],
        },
    ]


def initialize_result() -> Dict[str, Any]:
    return {
        "protocolVersion": MCP_PROTOCOL_VERSION,
        "serverInfo": {
            "name": SERVER_NAME,
            "version": SERVER_VERSION,
            "description": "MCP server for HashiCorp Vault secret and policy operations",
        },
        "capabilities": {
            "tools": {"listChanged": False},
            "resources": {"subscribe": False, "listChanged": False},
            "prompts": {"listChanged": False},
        },
    }


def _dump(obj: Any) -> str:
    return json.dumps(obj, indent=2)


def _text_result(text: str, structured: Any = None) -> ToolResult:
    return ToolResult(
        content=[TextContent(text=text)],
        structuredContent=structured if isinstance(structured, dict) else None,
    )


def generate_policy_prompt(arguments: Dict[str, Any]) -> PromptResult:
    args = GeneratePolicyArgs.model_validate(arguments)
    policy = generate_policy_draft(args.path, args.capabilities)
    return PromptResult(
        description=f"Policy draft for {args.path}",
        messages=[PromptMessage(role="user", content=TextContent(text=_dump(policy)))],
    )


class VaultOperations:
    """Entry surface for the MCP layer: tools, resources and prompts."""

    def __init__(self, kv: KVStore, policies: PolicyStore) -> None:
        self.kv = kv
        self.policies = policies

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        arguments = arguments or {}
        if name == "create_secret":
            call = self._create_secret(CreateSecretArgs.model_validate(arguments))
        elif name == "read_secret":
            call = self._read_secret(PathArgs.model_validate(arguments))
        elif name == "delete_secret":
            call = self._delete_secret(PathArgs.model_validate(arguments))
        elif name == "create_policy":
            call = self._create_policy(CreatePolicyArgs.model_validate(arguments))
        else:
            raise ValueError(f"unknown tool: {name}")
        try:
            return await call
        except Exception as e:
            log.info("tool_error", extra={"extra": {"tool": name, "error": str(e)}})
            return ToolResult(content=[TextContent(text=str(e))], isError=True)

    async def _create_secret(self, args: CreateSecretArgs) -> ToolResult:
        result = await self.kv.write(args.path, args.data)
        return _text_result(f"Secret written at: {args.path}\n{_dump(result)}", result)

    async def _read_secret(self, args: PathArgs) -> ToolResult:
        raw = await self.kv.read(args.path)
        envelope = KvReadResponse.model_validate(raw or {})
        payload = (envelope.data.data if envelope.data else None) or {}
        return _text_result(f"Secret read at: {args.path}\n{_dump(payload)}", payload)

    async def _delete_secret(self, args: PathArgs) -> ToolResult:
        result = await self.kv.delete(args.path)
        return _text_result(f"Secret deleted at: {args.path}\n{_dump(result)}", result)

    async def _create_policy(self, args: CreatePolicyArgs) -> ToolResult:
        result = await self.policies.put(args.name, args.policy)
        return _text_result(f"Policy '{args.name}' created.\n{_dump(result)}", result)

    async def list_secret_keys(self, prefix: str = "") -> List[str]:
        # Browse-only: never let a Vault failure surface here
        try:
            raw = await self.kv.list(prefix)
            return ListResponse.model_validate(raw or {}).key_list()
        except Exception as e:
            log.warning("secrets_list_unavailable", extra={"extra": {"prefix": prefix, "error": str(e)}})
            return []

    async def read_resource(self, uri: Any) -> List[ResourceContent]:
        uri = ReadResourceArgs(uri=uri).uri
        if uri == SECRETS_URI or uri.startswith(SECRETS_URI + "/"):
            prefix = uri[len(SECRETS_URI) + 1:]
            keys = await self.list_secret_keys(prefix)
            return [ResourceContent(uri=uri, text=json.dumps(keys))]
        if uri == POLICIES_URI:
            result = await self.policies.list()
            return [ResourceContent(uri=uri, text=json.dumps(result))]
        raise ValueError(f"unsupported resource URI: {uri}")

    async def get_prompt(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> PromptResult:
        if name == "generate_policy":
            return generate_policy_prompt(arguments or {})
        raise ValueError(f"unknown prompt: {name}")
