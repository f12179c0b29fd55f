"""
ROW CODEC - records to channel parameters and back

Purpose:
    1. Encode records into ordered column -> scalar mappings (insert / update)
    2. Decode positional rows into typed records, strictly

Data Flow:
    write: record → encode_insert()/encode_update() → statement params
    read:  rows → decode_rows() → dicts → pydantic records

The channel only carries int, float, str and NULL. Booleans travel as 0/1,
decimals as floats rounded to the column scale, timestamps as SQLite
"YYYY-MM-DD HH:MM:SS" text.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from kfet.core import registry
from kfet.core.errors import DecodingError, RecordValidationError
from kfet.core.registry import ColumnSpec, EntitySpec


RecordT = TypeVar("RecordT", bound=BaseModel)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def quantize(spec: ColumnSpec, number: Decimal) -> Decimal:
    """Round a decimal to the column's scale (money keeps two places)."""
    if spec.scale is None:
        return number
    return number.quantize(Decimal(1).scaleb(-spec.scale), rounding=ROUND_HALF_UP)


# ============================================================================
# ENCODE
# ============================================================================


def payload_of(record: Any) -> Dict[str, Any]:
    """
    Turn a typed or partial record into a column-keyed dict.

    Pydantic records keep only the fields the caller set, so omitted
    fields stay omitted (defaults on insert, untouched on update).
    """
    if record is None:
        return {}
    if isinstance(record, BaseModel):
        return record.model_dump(by_alias=True, exclude_unset=True)
    return dict(record)


def to_scalar(entity: str, spec: ColumnSpec, value: Any) -> Any:
    """Convert one python value to the scalar sent over the channel."""
    if value is None:
        return None

    where = f"{entity}.{spec.name}"

    if spec.type == registry.BOOLEAN:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, int) and value in (0, 1):
            return value
        raise RecordValidationError(f"{where}: expected a boolean", [spec.name])

    if spec.type == registry.DECIMAL:
        if isinstance(value, bool):
            raise RecordValidationError(f"{where}: expected a number", [spec.name])
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise RecordValidationError(f"{where}: expected a number", [spec.name])
        if not number.is_finite():
            raise RecordValidationError(f"{where}: must be finite", [spec.name])
        try:
            return float(quantize(spec, number))
        except InvalidOperation:
            raise RecordValidationError(f"{where}: out of range", [spec.name])

    if spec.type == registry.INTEGER:
        if isinstance(value, bool) or not isinstance(value, int):
            raise RecordValidationError(f"{where}: expected an integer", [spec.name])
        return value

    if spec.type == registry.TIMESTAMP:
        if not isinstance(value, datetime):
            raise RecordValidationError(f"{where}: expected a datetime", [spec.name])
        return value.strftime(TIMESTAMP_FORMAT)

    if not isinstance(value, str):
        raise RecordValidationError(f"{where}: expected text", [spec.name])
    return value


def _check_keys(entity: EntitySpec, payload: Mapping[str, Any]) -> None:
    unknown = [key for key in payload if not entity.has_column(key)]
    if unknown:
        raise RecordValidationError(
            f"{entity.name}: unknown columns {', '.join(unknown)}", unknown
        )

    generated = [key for key in payload if not entity.column(key).writable]
    if generated:
        raise RecordValidationError(
            f"{entity.name}: columns {', '.join(generated)} are not writable",
            generated,
        )


def encode_insert(entity: "EntitySpec | str", record: Any) -> Dict[str, Any]:
    """
    Encode a record for an insert.

    Every writable column is present in the result, in declared order:
    the provided value, the declared default, or NULL when nullable.

    Args:
        entity: Target entity (spec or table name).
        record: Pydantic record or mapping keyed by column name.

    Returns:
        Ordered dict of column name -> channel scalar.

    Raises:
        RecordValidationError: on unknown/generated keys, wrong value types,
            or non-nullable columns without value or default.
    """
    entity = registry.resolve(entity)
    payload = payload_of(record)
    _check_keys(entity, payload)

    encoded: Dict[str, Any] = {}
    missing: List[str] = []

    for spec in entity.writable_columns:
        if spec.name in payload and payload[spec.name] is not None:
            encoded[spec.name] = to_scalar(entity.name, spec, payload[spec.name])
        elif spec.default is not None:
            encoded[spec.name] = to_scalar(entity.name, spec, spec.default)
        elif spec.nullable:
            encoded[spec.name] = None
        else:
            missing.append(spec.name)

    if missing:
        raise RecordValidationError(
            f"{entity.name}: missing required fields {', '.join(missing)}", missing
        )
    return encoded


def encode_update(entity: "EntitySpec | str", record: Any) -> Dict[str, Any]:
    """
    Encode a partial record for an update.

    Only provided fields are returned; everything else is left as stored.
    """
    entity = registry.resolve(entity)
    payload = payload_of(record)

    if not payload:
        raise RecordValidationError(f"{entity.name}: nothing to update")
    _check_keys(entity, payload)

    encoded: Dict[str, Any] = {}
    for spec in entity.writable_columns:
        if spec.name not in payload:
            continue
        value = payload[spec.name]
        if value is None and not spec.nullable:
            raise RecordValidationError(
                f"{entity.name}.{spec.name}: cannot be null", [spec.name]
            )
        encoded[spec.name] = to_scalar(entity.name, spec, value)
    return encoded


def encode_filter_value(entity: "EntitySpec | str", column: str, value: Any) -> Any:
    entity = registry.resolve(entity)
    return to_scalar(entity.name, entity.column(column), value)


# ============================================================================
# DECODE
# ============================================================================


def from_scalar(spec: ColumnSpec, value: Any) -> Any:
    """Convert one channel scalar back to its python value, strictly."""
    if value is None:
        if not spec.nullable:
            raise DecodingError(f"column '{spec.name}' is not nullable but got NULL")
        return None

    if spec.type == registry.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise DecodingError(f"column '{spec.name}' expected 0/1, got {value!r}")

    if spec.type == registry.DECIMAL:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DecodingError(f"column '{spec.name}' expected a number, got {value!r}")
        # Stored as binary floating point, read back at the column's scale
        return quantize(spec, Decimal(str(value)))

    if spec.type == registry.INTEGER:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodingError(
                f"column '{spec.name}' expected an integer, got {value!r}"
            )
        return value

    if spec.type == registry.TIMESTAMP:
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise DecodingError(
                f"column '{spec.name}' expected a timestamp, got {value!r}"
            )
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            raise DecodingError(
                f"column '{spec.name}' has a malformed timestamp {value!r}"
            )

    if not isinstance(value, str):
        raise DecodingError(f"column '{spec.name}' expected text, got {value!r}")
    return value


def decode_row(columns: Sequence[ColumnSpec], row: Sequence[Any]) -> Dict[str, Any]:
    """
    Zip one positional row with its expected columns.

    Raises:
        DecodingError: if the arity differs or a value has the wrong type.
    """
    if len(row) != len(columns):
        raise DecodingError(
            f"expected {len(columns)} columns, got {len(row)}: {list(row)!r}"
        )
    return {spec.name: from_scalar(spec, value) for spec, value in zip(columns, row)}


def decode_rows(
    columns: Sequence[ColumnSpec], rows: Sequence[Sequence[Any]]
) -> List[Dict[str, Any]]:
    return [decode_row(columns, row) for row in rows]


def decode_records(
    columns: Sequence[ColumnSpec],
    rows: Sequence[Sequence[Any]],
    model: Type[RecordT],
) -> List[RecordT]:
    records = []
    for values in decode_rows(columns, rows):
        try:
            records.append(model.model_validate(values))
        except PydanticValidationError as error:
            raise DecodingError(f"row does not fit {model.__name__}: {error}")
    return records


def decode_one(
    columns: Sequence[ColumnSpec],
    rows: Sequence[Sequence[Any]],
    model: Type[RecordT],
) -> Optional[RecordT]:
    """First decoded record, or None for an empty result."""
    records = decode_records(columns, rows[:1], model)
    return records[0] if records else None
