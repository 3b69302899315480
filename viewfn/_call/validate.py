"""
Grammar checks for everything a call request contributes to the tool's argument vector.

Each validator raises a `CallRequestError` subclass naming the rule that was violated, so the message can be handed
back to the caller as-is. On success the validators return the (normalized) value.
"""

import re
from typing import TYPE_CHECKING, Iterable

from viewfn._common import ACCOUNT_ADDRESS_LENGTH, SUPPORTED_NETWORKS, Network

if TYPE_CHECKING:
    from viewfn._call import CallRequest

SEPARATOR = "::"

IDENTIFIER_RE = re.compile(r"[a-zA-Z][a-zA-Z0-9_]*|_[a-zA-Z0-9_]+")
HEX_DIGITS_RE = re.compile(r"[0-9a-fA-F]+")


class CallRequestError(ValueError):
    pass


class InvalidFunctionId(CallRequestError):
    pass


class InvalidModuleId(CallRequestError):
    pass


class InvalidIdentifier(CallRequestError):
    pass


class InvalidStructTag(CallRequestError):
    pass


class GenericStructTagNotSupported(InvalidStructTag, NotImplementedError):
    pass


class InvalidAddress(CallRequestError):
    pass


class InvalidLedgerVersion(CallRequestError):
    pass


class UnsupportedNetwork(CallRequestError):
    pass


def validate_identifier(identifier: str) -> str:
    if SEPARATOR in identifier:
        raise InvalidIdentifier(f"Identifier {identifier} should not contain '{SEPARATOR}'")
    if not IDENTIFIER_RE.fullmatch(identifier):
        raise InvalidIdentifier(f"Identifier {identifier!r} is not a valid Move identifier")
    return identifier


def validate_account_address(account_address: str) -> str:
    hex_digits = account_address[2:] if account_address.startswith("0x") else account_address
    if not hex_digits:
        raise InvalidAddress(f"Account address {account_address!r} is empty")

    # an odd number of digits is padded with a leading zero, e.g. '1aa' becomes '01aa'
    if len(hex_digits) % 2 != 0:
        hex_digits = f"0{hex_digits}"

    if not HEX_DIGITS_RE.fullmatch(hex_digits):
        raise InvalidAddress(f"Account address {account_address!r} is not a hex string")

    address_bytes = bytes.fromhex(hex_digits)

    if len(address_bytes) > ACCOUNT_ADDRESS_LENGTH:
        raise InvalidAddress(
            f"Hex string is too long. Address's length is {ACCOUNT_ADDRESS_LENGTH} bytes."
        )

    return f"0x{address_bytes.hex()}"


def validate_module_id(module_id: str) -> str:
    parts = module_id.split(SEPARATOR)
    if len(parts) != 2:
        raise InvalidModuleId("Invalid module id.")
    validate_account_address(parts[0])
    validate_identifier(parts[1])
    return module_id


def validate_function_id(function_id: str) -> str:
    parts = function_id.split(SEPARATOR)
    if len(parts) != 3:
        raise InvalidFunctionId("Invalid function name.")
    validate_module_id(f"{parts[0]}{SEPARATOR}{parts[1]}")
    validate_identifier(parts[2])
    return function_id


def validate_struct_tag(struct_tag: str) -> str:
    # generic type parameters can't be expressed in the tool's struct tag literals
    if "<" in struct_tag:
        raise GenericStructTagNotSupported(
            f"Not implemented: generic type arguments are not supported ({struct_tag})"
        )

    parts = struct_tag.split(SEPARATOR)
    if len(parts) != 3:
        raise InvalidStructTag("Invalid struct tag string literal.")
    validate_account_address(parts[0])
    validate_identifier(parts[1])
    validate_identifier(parts[2])
    return struct_tag


def validate_type_args(type_args: Iterable[str]) -> list[str]:
    return [validate_struct_tag(type_arg.strip()) for type_arg in type_args]


def validate_ledger_version(ledger_version: int) -> int:
    if ledger_version < 0:
        raise InvalidLedgerVersion("Ledger version should be >= 0")
    return ledger_version


def validate_network(network: str) -> Network:
    normalized = network.lower()
    if normalized not in SUPPORTED_NETWORKS:
        raise UnsupportedNetwork(f"{network} should be one of {', '.join(SUPPORTED_NETWORKS)}")
    return Network(normalized)


def validate_call_request(request: "CallRequest") -> None:
    validate_function_id(request.function_id)
    if request.type_args:
        validate_type_args(request.type_args)
    if request.ledger_version is not None:
        validate_ledger_version(request.ledger_version)
    if request.network:
        validate_network(request.network)
