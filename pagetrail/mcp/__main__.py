import logging
import subprocess
import sys
from pathlib import Path

from httpx import ASGITransport, AsyncClient

from pagetrail import config
from pagetrail.app import create_app
from pagetrail.mcp.client import PagetrailClient
from pagetrail.mcp.server import create_mcp_server


def run_migrations():
    """Run Alembic migrations before starting the MCP server."""
    # Ensure the database directory exists
    Path(config.DB_PATH).parent.mkdir(parents=True, exist_ok=True)

    result = subprocess.run(
        [sys.executable, "-m", "alembic", "upgrade", "head"],
        capture_output=False,
    )
    if result.returncode != 0:
        sys.exit(1)


def main():
    # stdout carries the MCP protocol, so logs go to stderr
    logging.basicConfig(
        level=config.LOG_LEVEL,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_migrations()

    app = create_app()
    transport = ASGITransport(app=app)
    http = AsyncClient(transport=transport, base_url="http://localhost")
    client = PagetrailClient(http)
    mcp = create_mcp_server(client)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
