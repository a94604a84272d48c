import asyncio
import logging
from typing import Any

import click
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from .config import TRANSPORTS, Settings, load_settings
from .dispatcher import OperationDispatcher, ToolOutcome
from .errors import ConfigError, UpstreamConnectionError
from .session import UpstreamSession

logger = logging.getLogger(__name__)

SERVER_NAME = "Azure DevOps MCP Server"
SERVER_VERSION = "1.0.0"


def _unwrap(outcome: ToolOutcome) -> str:
    if not outcome.ok:
        raise ToolError(outcome.error or "unknown error")
    return outcome.text


def create_server(dispatcher: OperationDispatcher) -> FastMCP:
    mcp = FastMCP(
        name=SERVER_NAME,
        version=SERVER_VERSION,
        instructions=(
            "Code search and file reads over one Azure DevOps project. "
            "Use search to find files matching a query, "
            "then read to fetch a file's content by repository name and path."
        ),
    )

    @mcp.tool()
    async def search(query: str, repo: Any = "") -> str:
        """Search for files in Azure DevOps repositories.

        Args:
            query: Search query, in Azure DevOps code search syntax.
            repo: Optional repository name to search in. Anything other than
                a string is ignored and the whole project is searched.

        Returns a JSON array of {repository, path, fileName, project}.
        """
        return _unwrap(await dispatcher.dispatch("search", {"query": query, "repo": repo}))

    @mcp.tool()
    async def read(repository: str, path: str, branch: str | None = None) -> str:
        """Read file content from Azure DevOps.

        Args:
            repository: Repository name (case-insensitive).
            path: File path, e.g. /src/main.py.
            branch: Optional branch name; the default branch is read when omitted.
        """
        arguments = {"repository": repository, "path": path}
        if branch:
            arguments["branch"] = branch
        return _unwrap(await dispatcher.dispatch("read", arguments))

    return mcp


async def serve(settings: Settings) -> None:
    session = await UpstreamSession.connect(settings.credentials, settings.api_version)
    async with session:
        mcp = create_server(OperationDispatcher(session))
        kwargs = {}
        if settings.transport != "stdio":
            kwargs["host"] = settings.host
            kwargs["port"] = settings.port
            logger.info(
                "%s listening on %s:%d (%s)",
                SERVER_NAME, settings.host, settings.port, settings.transport,
            )
        await mcp.run_async(transport=settings.transport, **kwargs)


@click.command()
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="YAML config file (default: ./config.yaml if present).")
@click.option("--transport", type=click.Choice(TRANSPORTS), default=None)
@click.option("--host", default=None)
@click.option("--port", type=int, default=None)
@click.option("--log-level", default="INFO", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(
    config_path: str | None,
    transport: str | None,
    host: str | None,
    port: int | None,
    log_level: str,
) -> None:
    """Serve Azure DevOps code search and file reads over MCP."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e))

    overrides = {"transport": transport, "host": host, "port": port}
    settings = settings.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    try:
        asyncio.run(serve(settings))
    except UpstreamConnectionError as e:
        raise click.ClickException(f"Failed to create Azure DevOps client: {e}")


if __name__ == "__main__":
    main()
