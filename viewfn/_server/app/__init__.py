import logging

import typer
import uvicorn

from viewfn._common import CallConfig
from viewfn._server import create_app

logger = logging.getLogger(__name__)
server_app = typer.Typer(help="Serve the call_function endpoint")


@server_app.command()
def start(
    host: str = typer.Option("127.0.0.1", "--host", envvar="VIEWFN_HOST", help="Interface to bind"),
    port: int = typer.Option(4000, "--port", "-p", envvar="VIEWFN_PORT", help="Port to listen on"),
) -> None:
    """
    Serve POST /call_function (and /api/call_function) until interrupted.
    """
    config = CallConfig.from_env()
    logger.info(f"Serving view function calls on {host}:{port}", extra={"bin_path": str(config.bin_path)})
    # logging is already configured by the root callback
    uvicorn.run(create_app(config), host=host, port=port, log_config=None)
