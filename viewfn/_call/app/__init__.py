from typing import Any, List, Optional

import typer
from rich.console import Console

from viewfn._call import respond
from viewfn._common import CallConfig, LogLevel

call_app = typer.Typer(help="Call view functions through the view-function tool")
console = Console()


@call_app.command()
def function(
    function_id: str = typer.Option(
        ...,
        "--function-id",
        "-f",
        help="Function as <ADDRESS>::<MODULE>::<FUNCTION>, e.g. 0x1::coin::balance",
    ),
    type_args: Optional[List[str]] = typer.Option(
        None,
        "--type-arg",
        "-t",
        help="Struct tag type argument as <ADDRESS>::<MODULE>::<TYPE> (repeatable)",
    ),
    args: Optional[List[str]] = typer.Option(
        None,
        "--arg",
        "-a",
        help="Argument literal passed on to the function (repeatable)",
    ),
    ledger_version: Optional[int] = typer.Option(
        None,
        "--ledger-version",
        "-l",
        help="Ledger version to query against, the latest if omitted",
    ),
    network: Optional[str] = typer.Option(
        None,
        "--network",
        "-n",
        help="One of testnet, mainnet or devnet",
    ),
    with_logs: bool = typer.Option(
        False,
        "--with-logs",
        help="Collect the tool's execution log and include it in the response",
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None,
        "--log-level",
        help="Log level of the collected execution log (debug if omitted)",
    ),
) -> None:
    """
    Call a single view function and print the response as JSON.
    """
    payload: dict[str, Any] = {
        "function_id": function_id,
        "type_args": type_args,
        "args": args,
        "ledger_version": ledger_version,
        "network": network,
        "options": {"with_logs": with_logs, "log_level": log_level},
    }
    response = respond(payload, CallConfig.from_env())
    console.print_json(data=response)
    if response["error"]:
        raise typer.Exit(code=1)
