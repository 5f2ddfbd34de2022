"""Shared data models for the BounceBan verification step."""

from __future__ import annotations

import string
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Union

OPERATION_VALIDATE_EMAIL = "validateEmail"
OPERATIONS = (OPERATION_VALIDATE_EMAIL,)

MODE_SEQUENTIAL = "sequential"
MODE_BATCH = "batch"
PROCESSING_MODES = (MODE_SEQUENTIAL, MODE_BATCH)

VERIFY_MODES = ("regular", "deepverify")
CATCHALL_FLAGS = ("0", "1")

RESULT_FIELD = "bounceban_result"

# A parameter is a template over the record ("{email}"), a Verbatim or a callable.
Parameter = Union[str, Callable[[Dict[str, Any], int], Any]]


class Verbatim(str):
    """A parameter value sent as-is, braces included."""


class _RecordView(dict):
    """Mapping for str.format_map where unknown fields render as ''."""

    def __missing__(self, key: str) -> str:
        return ""


class _TolerantFormatter(string.Formatter):
    def get_field(self, field_name, args, kwargs):
        try:
            obj, first = super().get_field(field_name, args, kwargs)
        except (KeyError, IndexError, AttributeError, TypeError):
            return "", field_name
        return ("" if obj is None else obj), first


_formatter = _TolerantFormatter()


def resolve_parameter(value: Optional[Parameter], record: Dict[str, Any], index: int) -> str:
    """Resolve a parameter against one input record.

    Strings are treated as format templates over the record, so "{email}" reads
    the record's ``email`` key. Literal braces are written ``{{`` and ``}}``, or
    the whole value is wrapped in Verbatim to skip templating. Missing fields
    resolve to an empty string. Callables receive ``(record, index)``.
    """
    if value is None:
        return ""
    if isinstance(value, Verbatim):
        return str(value).strip()
    if callable(value):
        resolved = value(record, index)
        return "" if resolved is None else str(resolved)
    return _formatter.vformat(value, (), _RecordView(record)).strip()


@dataclass
class VerifyOptions:
    """Optional query fields sent alongside the email address."""

    mode: Optional[Parameter] = None
    disable_catchall_verify: Optional[Parameter] = None
    url: Optional[Parameter] = None

    def __post_init__(self) -> None:
        if isinstance(self.mode, str) and not _is_template(self.mode):
            if self.mode and self.mode not in VERIFY_MODES:
                raise ValueError(f"mode must be one of {VERIFY_MODES}, got {self.mode!r}")
        if isinstance(self.disable_catchall_verify, bool):
            self.disable_catchall_verify = "1" if self.disable_catchall_verify else "0"
        if isinstance(self.disable_catchall_verify, str) and not _is_template(
            self.disable_catchall_verify
        ):
            if self.disable_catchall_verify and self.disable_catchall_verify not in CATCHALL_FLAGS:
                raise ValueError(
                    "disable_catchall_verify must be '0' or '1', "
                    f"got {self.disable_catchall_verify!r}"
                )

    def resolve(self, record: Dict[str, Any], index: int) -> Dict[str, str]:
        """Return the options for one record, dropping unset or empty values."""
        resolved: Dict[str, str] = {}
        for name in ("mode", "disable_catchall_verify", "url"):
            value = resolve_parameter(getattr(self, name), record, index)
            if value:
                resolved[name] = value
        return resolved


@dataclass
class NodeParameters:
    operation: str = OPERATION_VALIDATE_EMAIL
    email: Parameter = "{email}"
    options: VerifyOptions = field(default_factory=VerifyOptions)
    processing_mode: str = MODE_SEQUENTIAL
    continue_on_fail: bool = False

    def __post_init__(self) -> None:
        if self.processing_mode not in PROCESSING_MODES:
            raise ValueError(
                f"processing_mode must be one of {PROCESSING_MODES}, got {self.processing_mode!r}"
            )


@dataclass
class BounceBanCredentials:
    api_key: str

    def headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key}


@dataclass
class OutputItem:
    json: Dict[str, Any]
    paired_item: int  # index of the originating input record

    def to_dict(self) -> Dict[str, Any]:
        return {"json": self.json, "paired_item": {"item": self.paired_item}}

    @property
    def result(self) -> Any:
        return self.json.get(RESULT_FIELD)

    @property
    def failed(self) -> bool:
        result = self.result
        return isinstance(result, dict) and "error" in result and len(result) == 1


def _is_template(value: str) -> bool:
    return any(name is not None for _, name, _, _ in string.Formatter().parse(value))
