import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import sentry_sdk
from pydantic import AliasChoices, BaseModel, Field, StrictInt, ValidationError, field_validator

from viewfn._common import CallConfig, LogLevel
from viewfn._call.validate import CallRequestError, validate_call_request, validate_network

logger = logging.getLogger(__name__)


class CallOptions(BaseModel):
    with_logs: bool = False
    log_level: LogLevel | None = None


class CallRequest(BaseModel):
    function_id: str = Field(validation_alias=AliasChoices("function_id", "func"))
    type_args: list[str] | None = None
    args: list[str] | None = None
    ledger_version: StrictInt | None = None
    network: str | None = None
    options: CallOptions | None = None

    @field_validator("type_args", mode="before")
    @classmethod
    def split_type_args(cls, value: Any) -> Any:
        return _split_comma_list(value)

    @field_validator("args", mode="before")
    @classmethod
    def split_args(cls, value: Any) -> Any:
        value = _split_comma_list(value)
        if isinstance(value, list):
            return [_value_literal(item) for item in value]
        return value

    @property
    def with_logs(self) -> bool:
        return self.options is not None and self.options.with_logs

    @property
    def log_level(self) -> LogLevel | None:
        if self.options is None or not self.options.with_logs:
            return None
        return self.options.log_level or LogLevel.DEBUG


def _split_comma_list(value: Any) -> Any:
    # older clients send list-valued fields as one comma-separated string
    if isinstance(value, str):
        return value.split(",") if value.strip() else []
    return value


def _value_literal(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class ExecutionResult(BaseModel):
    """
    What the view-function tool prints to stdout after a clean exit.
    """

    log_path: str | None = None
    return_values: list[Any] | None = None


@dataclass(frozen=True)
class Success:
    return_values: list[Any]
    logs: list[str] | None = None


@dataclass(frozen=True)
class EmptySuccess:
    pass


@dataclass(frozen=True)
class FailureWithLog:
    log_path: str
    logs: list[str]


@dataclass(frozen=True)
class FailureWithError:
    message: str


ExecutionOutcome = Success | EmptySuccess | FailureWithLog | FailureWithError


def build_command_args(request: CallRequest) -> list[str]:
    """
    Compiles a request into the flag/value pairs for the view-function tool. Absent optional fields never produce a
    flag. The executable itself is not part of the result, see `run_command`.
    """
    validate_call_request(request)

    args = ["--function-id", request.function_id]
    if request.type_args:
        args.extend(["--type-args", ",".join(type_arg.strip() for type_arg in request.type_args)])
    if request.args:
        args.extend(["--args", ",".join(arg.strip() for arg in request.args)])
    if request.ledger_version is not None:
        args.extend(["--ledger-version", str(request.ledger_version)])
    if request.network:
        args.extend(["--network", str(validate_network(request.network))])
    log_level = request.log_level
    if log_level is not None:
        args.extend(["--log-level", str(log_level)])

    return args


def run_command(args: list[str], config: CallConfig) -> subprocess.CompletedProcess[str]:
    command: list[str] = [str(config.bin_path), *args]
    if config.tool_config is not None:
        command.extend(["--config", str(config.tool_config)])

    env = os.environ.copy()
    if config.backtrace:
        env["RUST_BACKTRACE"] = "1"

    logger.debug("Invoking view function tool", extra={"command": command})
    return subprocess.run(
        command,
        capture_output=True,
        encoding="utf-8",
        errors="replace",
        check=False,
        timeout=config.timeout,
        env=env,
    )


def read_log(log_path: Path) -> list[str]:
    return log_path.read_text(encoding="utf-8", errors="replace").splitlines()


def interpret_result(result: subprocess.CompletedProcess[str], with_logs: bool) -> ExecutionOutcome:
    if result.returncode != 0:
        message = (
            result.stderr.strip()
            or result.stdout.strip()
            or f"{result.args[0]} exited with code {result.returncode}"
        )
        logger.warning("View function tool failed", extra={"returncode": result.returncode})
        return FailureWithError(message)

    try:
        execution_result = ExecutionResult.model_validate_json(result.stdout)
    except ValidationError as e:
        logger.warning("Couldn't parse view function tool output", extra={"stdout": result.stdout})
        return FailureWithError(f"Failed to parse output: {_format_validation_error(e)}")

    log_path = execution_result.log_path
    if execution_result.return_values:
        logs = None
        if with_logs and log_path:
            try:
                logs = read_log(Path(log_path))
            except OSError as e:
                logger.warning(f"Failed to read log file {log_path}: {e}")
        return Success(execution_result.return_values, logs)

    # a clean exit without return values is treated as a failed call, the log (if requested) tells why
    if not with_logs or not log_path:
        return EmptySuccess()

    try:
        return FailureWithLog(log_path, read_log(Path(log_path)))
    except OSError as e:
        return FailureWithError(f"Failed to read log file {log_path}: {e}")


def call_function(request: CallRequest, config: CallConfig) -> ExecutionOutcome:
    """
    Validates, compiles and runs a single call. Validation errors are raised before the tool is started, everything
    that goes wrong afterward is reported as an outcome.
    """
    args = build_command_args(request)
    try:
        result = run_command(args, config)
    except subprocess.TimeoutExpired:
        logger.warning("View function tool timed out", extra={"timeout": config.timeout})
        return FailureWithError(f"{config.bin_path} timed out after {config.timeout:g} seconds")
    except OSError as e:
        logger.warning(f"Failed to start {config.bin_path}: {e}")
        return FailureWithError(str(e))

    return interpret_result(result, request.with_logs)


def to_response(outcome: ExecutionOutcome) -> dict[str, Any]:
    if isinstance(outcome, Success):
        details: dict[str, Any] = {"return_values": outcome.return_values}
        if outcome.logs is not None:
            details["logs"] = outcome.logs
        return {"details": details, "error": False}
    elif isinstance(outcome, FailureWithLog):
        return {"details": {"return_values": [], "logs": outcome.logs}, "error": True}
    elif isinstance(outcome, EmptySuccess):
        return {"details": {"return_values": []}, "error": True}
    else:
        return {"details": outcome.message, "error": True}


def error_response(message: str) -> dict[str, Any]:
    return {"details": message, "error": True}


def respond(payload: Any, config: CallConfig) -> dict[str, Any]:
    """
    Turns an untrusted request body into the wire response. Malformed and invalid requests are answered with
    `error: true` and a message naming the problem.
    """
    try:
        request = CallRequest.model_validate(payload)
    except ValidationError as e:
        return error_response(_format_validation_error(e))

    sentry_sdk.set_tag("call.function_id", request.function_id)
    sentry_sdk.set_tag("call.network", request.network or "default")
    logger.info("Calling view function", extra={"function_id": request.function_id, "network": request.network})

    try:
        outcome = call_function(request, config)
    except CallRequestError as e:
        logger.info(f"Rejected call request: {e}")
        return error_response(str(e))

    return to_response(outcome)


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"])
        messages.append(f"{location}: {err['msg']}" if location else err["msg"])
    return "; ".join(messages)
