import os, sys
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from vault_kv_mcp.app import create_app
from vault_kv_mcp.settings import settings
app = create_app()

if __name__ == "__main__":
    # Optional: run directly with `python main.py` to avoid uvicorn target syntax.
    import uvicorn
    from vault_kv_mcp.logs import level_from

    reload = os.environ.get("RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run("main:app", host=settings.HOST, port=settings.MCP_PORT, reload=reload, log_level=level_from(settings.LOG_LEVEL))
