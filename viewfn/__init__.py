import logging
import os

import sentry_sdk
import typer
from sentry_sdk.integrations.logging import SentryLogsHandler

from ._call.app import call_app
from ._common import __version__
from ._server.app import server_app

__all__ = ["__version__", "app"]

SENTRY_DSN = os.environ.get("SENTRY_DSN", None)

app = typer.Typer()
app.add_typer(call_app, name="call")
app.add_typer(server_app, name="server")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v")) -> None:
    setup_logs(verbose)
    setup_sentry()


def setup_sentry() -> None:
    if not SENTRY_DSN:
        return

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        traces_sample_rate=1.0,
        enable_logs=True,
        release=f"viewfn@{__version__}",
    )


class AppendExtrasFormatter(logging.Formatter):
    # attributes every record carries, plus what formatters and uvicorn's loggers add
    RESERVED = frozenset(logging.LogRecord("", logging.NOTSET, "", 0, "", None, None).__dict__) | {
        "message",
        "asctime",
        "extra_str",
        "color_message",
    }

    def format(self, record: logging.LogRecord) -> str:
        extras = {k: v for k, v in record.__dict__.items() if k not in self.RESERVED}

        if extras:
            record.extra_str = f" {{{' '.join(f'{k}={v!r}' for k, v in extras.items())}}}"
        else:
            record.extra_str = ""

        return super().format(record)


def setup_logs(verbose: bool) -> None:
    fmt = "[%(levelname)s] %(asctime)s | %(name)s - %(message)s%(extra_str)s"
    std_out = logging.StreamHandler()
    std_out.setFormatter(AppendExtrasFormatter(fmt=fmt))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        handlers=[SentryLogsHandler(level=logging.INFO), std_out],
    )
