import json
import os
from typing import Dict, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from .models import Principal
from .settings import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
_KEYMAP_CACHE: dict[str, Dict[str, str]] = {}

ANONYMOUS = Principal(subject="anonymous")


def _load_keymap() -> Dict[str, str]:
    raw = settings.API_KEYS_JSON or os.environ.get("API_KEYS_JSON") or ""
    if not raw:
        return {}

    cached = _KEYMAP_CACHE.get(raw)
    if cached is not None:
        return cached

    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    result: Dict[str, str] = {str(k): str(v) for k, v in parsed.items()} if isinstance(parsed, dict) else {}

    _KEYMAP_CACHE.clear()
    _KEYMAP_CACHE[raw] = result
    return result


def get_principal(x_api_key: Optional[str] = Depends(api_key_header)) -> Principal:
    if not settings.AUTH_API_KEY_ENABLED:
        return ANONYMOUS
    subject = _load_keymap().get(x_api_key.strip()) if x_api_key else None
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return Principal(subject=subject)
