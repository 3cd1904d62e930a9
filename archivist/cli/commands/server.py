"""Server command."""

import uvicorn

from archivist.cli.console import get_console


def serve(
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
) -> None:
    """Run the Archivist API server in the foreground.

    Args:
        host: Host to bind to.
        port: Port to listen on.
        reload: Restart on code changes (development only).
    """
    get_console().print(f"Serving on [bold]http://{host}:{port}[/bold]")
    uvicorn.run(
        "archivist.application.api.rest.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_config=None,  # configure_logging() owns the root logger
    )
