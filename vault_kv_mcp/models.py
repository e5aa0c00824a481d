from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class Principal(BaseModel):
    subject: str


# Vault response envelopes. Vault may omit any of these fields, so every one is optional.

class KvData(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    current_version: Optional[Any] = None


class KvReadResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: Optional[KvData] = None


class KvMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    current_version: Optional[Any] = None


class KvMetadataResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: Optional[KvMetadata] = None

    def usable_version(self) -> Optional[int]:
        v = self.data.current_version if self.data else None
        # bool is an int subclass; reject it along with zero and negatives
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            return None
        return v


class KeyList(BaseModel):
    model_config = ConfigDict(extra="allow")

    keys: Optional[List[str]] = None


class ListResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: Optional[KeyList] = None

    def key_list(self) -> List[str]:
        return list(self.data.keys or []) if self.data else []


# Tool / prompt arguments

class CreateSecretArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    data: Dict[str, Any]


class PathArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str


class CreatePolicyArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str
    policy: str


class GeneratePolicyArgs(BaseModel):
    path: str
    capabilities: str


class ReadResourceArgs(BaseModel):
    uri: str


# MCP result shapes

class TextContent(BaseModel):
    type: str = "text"
    text: str


class ToolResult(BaseModel):
    content: List[TextContent]
    structuredContent: Optional[Dict[str, Any]] = None
    isError: bool = False


class ResourceContent(BaseModel):
    uri: str
    mimeType: str = "application/json"
    text: str


class PromptMessage(BaseModel):
    role: str = "user"
    content: TextContent


class PromptResult(BaseModel):
    description: Optional[str] = None
    messages: List[PromptMessage] = Field(default_factory=list)


# REST bodies

class SecretWrite(BaseModel):
    data: Dict[str, Any] = Field(default_factory=dict)


class SecretRead(BaseModel):
    data: Dict[str, Any]
    version: Optional[int] = None
    created_time: Optional[str] = None


class PolicyWrite(BaseModel):
    policy: str
