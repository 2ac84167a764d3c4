"""JSON-Patch (RFC 6902) application onto User records.

Operations are applied one at a time with ``jsonpatch``. A failing operation
is recorded as a field-level error and skipped; the remaining operations are
still applied. Callers check ``PatchResult.ok`` instead of catching.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, Literal

import jsonpatch
import jsonpointer
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from src.users_api.entities.user import User

PatchOp = Literal["add", "remove", "replace", "move", "copy", "test"]

_VALUE_OPS: Final = frozenset({"add", "replace", "test"})
_FROM_OPS: Final = frozenset({"move", "copy"})
_READ_ONLY_FIELDS: Final = frozenset({"id"})


class PatchOperation(BaseModel):
    """A single operation of a partial-update document."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"examples": [{"op": "replace", "path": "/age", "value": 31}]},
    )

    op: PatchOp
    path: str
    value: Any = None
    from_: str | None = Field(default=None, alias="from")

    @model_validator(mode="after")
    def _check_operands(self) -> "PatchOperation":
        if self.op in _VALUE_OPS and "value" not in self.model_fields_set:
            raise ValueError(f"'{self.op}' operation requires a 'value' member")
        if self.op in _FROM_OPS and self.from_ is None:
            raise ValueError(f"'{self.op}' operation requires a 'from' member")
        return self


@dataclass(frozen=True)
class PatchError:
    """Failure of one operation, tagged with the operation's path."""

    path: str
    message: str


@dataclass(frozen=True)
class PatchResult:
    """Outcome of applying a document: the patched record or its errors."""

    value: User | None
    errors: list[PatchError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def errors_by_path(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for error in self.errors:
            grouped.setdefault(error.path, []).append(error.message)
        return grouped


class _OperationFailed(Exception):
    pass


ErrorCallback = Callable[[PatchOperation, str], None]


def _resolve_pointer(pointer: str, *, writable: bool) -> str:
    """Map the first segment of ``pointer`` onto a User field, ignoring case."""
    try:
        parts = jsonpointer.JsonPointer(pointer).parts
    except jsonpointer.JsonPointerException as e:
        raise _OperationFailed(str(e)) from e

    if not parts:
        raise _OperationFailed("The whole record cannot be the target of an operation.")

    fields = {name.lower(): name for name in User.model_fields}
    name = fields.get(parts[0].lower())
    if name is None:
        raise _OperationFailed(
            f"The target location specified by path segment '{parts[0]}' was not found."
        )
    if writable and name in _READ_ONLY_FIELDS:
        raise _OperationFailed(f"The property '{name}' is read-only.")

    return jsonpointer.JsonPointer.from_parts([name, *parts[1:]]).path


def _to_json_patch(operation: PatchOperation) -> dict[str, Any]:
    writable = operation.op != "test"
    raw: dict[str, Any] = {
        "op": operation.op,
        "path": _resolve_pointer(operation.path, writable=writable),
    }
    if operation.op in _VALUE_OPS:
        raw["value"] = operation.value
    if operation.op in _FROM_OPS:
        # move removes its source, copy only reads it
        raw["from"] = _resolve_pointer(operation.from_, writable=operation.op == "move")
    return raw


def _validation_message(details: list[dict[str, Any]]) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in detail['loc'])}: {detail['msg']}"
        for detail in details
    )


def _apply_operation(document: dict[str, Any], operation: PatchOperation) -> dict[str, Any]:
    try:
        candidate = jsonpatch.apply_patch(document, [_to_json_patch(operation)])
    except (jsonpatch.JsonPatchException, jsonpointer.JsonPointerException) as e:
        raise _OperationFailed(str(e)) from e
    except TypeError as e:
        # removing an index of a scalar, e.g. /name/0
        raise _OperationFailed(str(e)) from e

    # Fields may be absent in between operations (e.g. the source of a move);
    # completeness is checked once the whole document has run.
    try:
        return User.model_validate(candidate).model_dump(mode="json")
    except ValidationError as e:
        problems = [detail for detail in e.errors() if detail["type"] != "missing"]
        if problems:
            raise _OperationFailed(_validation_message(problems)) from e
        return candidate


def _removal_source(operation: PatchOperation) -> str:
    return operation.from_ if operation.op == "move" else operation.path


def apply_patch(
    operations: Sequence[PatchOperation],
    target: User,
    on_error: ErrorCallback | None = None,
) -> PatchResult:
    """Apply ``operations`` in order to a copy of ``target``.

    ``target`` itself is never modified. Every failing operation produces one
    ``PatchError`` and leaves the working copy as it was before that
    operation; later operations still run. ``on_error`` is invoked for each
    failure as it happens.

    A field that is still absent after the last operation is reported
    against the path of the operation that removed it.
    """
    document = target.model_dump(mode="json")
    errors: list[PatchError] = []
    removed_by: dict[str, PatchOperation] = {}

    for operation in operations:
        try:
            patched = _apply_operation(document, operation)
        except _OperationFailed as e:
            message = str(e)
            logger.debug("Patch operation {} {} failed: {}", operation.op, operation.path, message)
            errors.append(PatchError(path=operation.path, message=message))
            if on_error is not None:
                on_error(operation, message)
            continue

        for name in User.model_fields:
            if name in document and name not in patched:
                removed_by[name] = operation
            elif name in patched:
                removed_by.pop(name, None)
        document = patched

    for name, operation in removed_by.items():
        message = f"The field '{name}' is required and cannot be removed."
        errors.append(PatchError(path=_removal_source(operation), message=message))
        if on_error is not None:
            on_error(operation, message)

    if errors:
        return PatchResult(value=None, errors=errors)
    return PatchResult(value=User.model_validate(document))
