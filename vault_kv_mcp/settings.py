from typing import Optional, Any, Dict
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource
import os
import json
import tomllib
from pathlib import Path

import yaml


class Settings(BaseSettings):
    # Vault connection
    VAULT_ADDR: str = "http://localhost:8200"
    VAULT_TOKEN: Optional[str] = None
    VAULT_NAMESPACE: Optional[str] = None
    VAULT_TIMEOUT_SECONDS: Optional[float] = None
    KV_MOUNT: str = "secret"

    # Server
    HOST: str = "127.0.0.1"
    MCP_PORT: int = 3000
    LOG_LEVEL: str = "info"
    LOG_DIR: str = "logs"

    # API key auth for the HTTP transport: JSON map token -> subject
    AUTH_API_KEY_ENABLED: bool = False
    API_KEYS_JSON: Optional[str] = None

    # REST exposure toggle (for MCP-only deployments set to false)
    EXPOSE_REST_ROUTES: bool = True

    # CORS (for HTTP MCP Inspector). Comma-separated origins; e.g.,
    # "https://inspector.modelcontextprotocol.io,https://your-site".
    # If empty/None, CORS is disabled.
    CORS_ALLOW_ORIGINS: Optional[str] = None

    # Do NOT auto-load .env; prefer environment variables and an optional config file.
    # A config file path can be provided via APP_CONFIG_FILE (JSON/TOML/YAML). Env vars override file.
    model_config = SettingsConfigDict(case_sensitive=True)

    @field_validator("VAULT_ADDR")
    @classmethod
    def _check_addr(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")) or len(v.split("://", 1)[1].strip("/")) == 0:
            raise ValueError("VAULT_ADDR must be a valid URL (e.g., http://vault.example.com:8200)")
        return v

    @field_validator("VAULT_TOKEN")
    @classmethod
    def _check_token(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if len(v) < 3 or not v.startswith("hvs."):
            raise ValueError("VAULT_TOKEN must start with 'hvs.' prefix for HashiCorp Vault tokens")
        return v

    @field_validator("MCP_PORT")
    @classmethod
    def _check_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("MCP_PORT must be between 1 and 65535")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,  # environment has priority over file
            _FileConfigSource(settings_cls),  # optional structured config file
            file_secret_settings,
        )


class _FileConfigSource(PydanticBaseSettingsSource):
    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._data: Dict[str, Any] = {}
        # Determine config path: APP_CONFIG_FILE or common defaults in CWD
        cfg = os.environ.get("APP_CONFIG_FILE") or os.environ.get("CONFIG_FILE")
        path: Optional[Path] = Path(cfg).expanduser().resolve() if cfg else None
        if not path:
            for name in ("config.toml", "config.json", "config.yaml", "config.yml"):
                p = Path.cwd() / name
                if p.exists():
                    path = p.resolve()
                    break
        if not path or not path.exists():
            return
        data: Dict[str, Any] = {}
        suffix = path.suffix.lower()
        if suffix == ".json":
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f) or {}
        elif suffix == ".toml":
            with path.open("rb") as f:
                data = tomllib.load(f) or {}
        elif suffix in (".yaml", ".yml"):
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        # Normalize to uppercase keys
        if isinstance(data, dict):
            self._data = {str(k).upper(): v for k, v in data.items()}

    def get_field_value(self, field, field_name: str) -> tuple[Any, str, bool]:
        if field_name in self._data:
            return self._data[field_name], field_name, False
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {k: v for k, v in self._data.items() if k in self.settings_cls.model_fields}


class ConfigError(RuntimeError):
    pass


def require_vault_config(s: Optional[Settings] = None) -> Settings:
    """Check the settings carry what the Vault client needs before it is built."""
    s = s or settings
    if not s.VAULT_TOKEN:
        raise ConfigError("VAULT_TOKEN is required")
    return s


settings = Settings()
