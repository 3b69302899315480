import logging
import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)

__version__ = "0.1.0"

DEFAULT_BIN_PATH = "bin/view-function"
DEFAULT_TIMEOUT_SECONDS = 120.0

# an account address is at most 32 bytes, shorter addresses get left-padded with zeros by the tool
ACCOUNT_ADDRESS_LENGTH = 32


class Network(StrEnum):
    TESTNET = "testnet"
    MAINNET = "mainnet"
    DEVNET = "devnet"


SUPPORTED_NETWORKS = tuple(network.value for network in Network)


class LogLevel(StrEnum):
    OFF = "off"
    ERROR = "error"
    WARN = "warn"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"


@dataclass(frozen=True)
class CallConfig:
    """
    Process-wide settings for invoking the view-function tool. They are read once at startup and handed to every
    invocation explicitly, so nothing touches `os.environ` while a request is processed.
    """

    bin_path: Path = Path(DEFAULT_BIN_PATH)
    backtrace: bool = True
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    tool_config: Path | None = None

    @classmethod
    def from_env(cls) -> "CallConfig":
        tool_config = os.environ.get("VIEWFN_TOOL_CONFIG", "").strip()
        config = cls(
            bin_path=Path(os.environ.get("BIN_PATH", DEFAULT_BIN_PATH)),
            backtrace=env_flag("VIEWFN_BACKTRACE", True),
            timeout=env_timeout("VIEWFN_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            tool_config=Path(tool_config) if tool_config else None,
        )
        logger.debug("Loaded call configuration", extra={"call_config": config})
        return config


def env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default

    return value.strip().lower() in ("1", "true", "yes", "on")


def env_timeout(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default

    timeout = float(value)
    if timeout <= 0:
        raise ValueError(f"{name} must be a positive number of seconds, got {value}")

    return timeout
