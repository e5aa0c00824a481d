"""
Stdio JSON-RPC transport for the Vault MCP service.

Reads newline-delimited JSON-RPC 2.0 messages from stdin and writes responses to stdout.
Logs go to stderr and logs/stdio.log so stdout carries protocol messages only.
"""
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError


def _println(obj: Dict[str, Any]):
    sys.stdout.write(json.dumps(obj) + "\n")
    sys.stdout.flush()


def serve(stdin=None) -> None:
    from .logs import configure_logger
    from .mcp_rpc import handle_message
    from .settings import require_vault_config, settings

    require_vault_config(settings)
    subject = os.environ.get("SUBJECT", "stdio-agent")
    logs_dir = Path(os.environ.get("LOG_DIR", settings.LOG_DIR))
    logger = configure_logger("vault_kv_mcp.stdio", logs_dir, "stdio.log", settings.LOG_LEVEL)
    for name in ("vault_kv_mcp.request", "vault_kv_mcp.response", "vault_kv_mcp.vault"):
        configure_logger(name, logs_dir, None, settings.LOG_LEVEL)

    sys.stderr.write("vault mcp server running via stdio\n")
    sys.stderr.flush()
    for line in (stdin or sys.stdin):
        line = line.strip()
        if not line:
            continue
        try:
            msg = json.loads(line)
        except ValueError as e:
            _println({"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": f"Parse error: {e}"}})
            continue
        if not isinstance(msg, dict):
            _println({"jsonrpc": "2.0", "id": None, "error": {"code": -32600, "message": "Invalid Request"}})
            continue
        logger.debug("stdio_request", extra={"extra": {"id": msg.get("id"), "method": msg.get("method")}})
        try:
            res = asyncio.run(handle_message(msg, subject))
        except Exception as e:
            # one bad message must not end the session
            logger.exception("stdio_internal_error", extra={"extra": {"id": msg.get("id"), "method": msg.get("method")}})
            res = {"jsonrpc": "2.0", "id": msg.get("id"), "error": {"code": -32603, "message": f"Internal error: {e}"}} if "id" in msg else None
        if res is not None:
            _println(res)
            logger.info("stdio_result", extra={"extra": {"id": msg.get("id"), "method": msg.get("method"), "error": (res.get("error") or {}).get("message")}})
        if msg.get("method") == "shutdown":
            break


def main():
    try:
        serve()
    except (ValidationError, RuntimeError, OSError) as error:
        sys.stderr.write(f"Failed to start server: {error}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
