"""Validation helpers used by the `check` step of the Vault dynamic providers."""

from collections.abc import Mapping
from typing import Any

from pulumi.dynamic import CheckFailure
from pulumi.runtime import rpc


def is_unknown(value: Any) -> bool:
    """Whether a property is not known yet, which happens during previews."""
    return value == rpc.UNKNOWN


def check_required_string(
    props: Mapping[str, Any], key: str, failures: list[CheckFailure]
) -> None:
    value = props.get(key)
    if is_unknown(value):
        return
    if not isinstance(value, str) or not value.strip("/"):
        failures.append(CheckFailure(key, f"{key} is required and must be a string"))


def check_bool(
    props: Mapping[str, Any], key: str, failures: list[CheckFailure]
) -> None:
    value = props.get(key)
    if is_unknown(value):
        return
    if not isinstance(value, bool):
        failures.append(CheckFailure(key, f"{key} must be a boolean"))


def check_non_negative_int(
    props: Mapping[str, Any], key: str, failures: list[CheckFailure]
) -> None:
    value = props.get(key)
    if is_unknown(value):
        return
    # Numbers arrive as floats from the engine
    if isinstance(value, bool) or not isinstance(value, int | float):
        failures.append(CheckFailure(key, f"{key} must be a number of seconds"))
    elif value < 0 or int(value) != value:
        failures.append(CheckFailure(key, f"{key} must be a non-negative integer"))


def check_string_list(
    props: Mapping[str, Any], key: str, failures: list[CheckFailure]
) -> None:
    value = props.get(key)
    if is_unknown(value):
        return
    if not isinstance(value, list | tuple) or not all(
        isinstance(element, str) for element in value
    ):
        failures.append(CheckFailure(key, f"{key} must be a list of strings"))


def check_string_map(
    props: Mapping[str, Any], key: str, failures: list[CheckFailure]
) -> None:
    value = props.get(key)
    if is_unknown(value):
        return
    if not isinstance(value, Mapping):
        failures.append(CheckFailure(key, f"{key} should be a map"))
    elif not all(isinstance(element, str) for element in value.values()):
        failures.append(CheckFailure(key, f"{key} should be a string -> string map"))
