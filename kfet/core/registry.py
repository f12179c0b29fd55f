"""
SCHEMA REGISTRY - static knowledge about the ledger tables

Purpose:
    Describe every entity once (ordered columns, semantic types, defaults,
    references and their delete policy) so the statement builder and the
    row codec read the same truth.

Data Flow:
    models.Base.metadata → build_registry() → EntitySpec lookups
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, Numeric, Table

from kfet.core import models


INTEGER = "integer"
TEXT = "text"
DECIMAL = "decimal"
BOOLEAN = "boolean"
TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class ColumnSpec:
    name: str
    type: str
    nullable: bool
    default: Any = None
    has_default: bool = False
    primary_key: bool = False
    generated: bool = False
    # Decimal places kept for money columns
    scale: Optional[int] = None

    @property
    def writable(self) -> bool:
        return not (self.primary_key or self.generated)


@dataclass(frozen=True)
class Reference:
    """Outgoing foreign key from `entity.column` to `target.target_column`."""

    entity: str
    column: str
    target: str
    target_column: str
    on_delete: str


@dataclass(frozen=True)
class EntitySpec:
    name: str
    table: Table = field(repr=False, compare=False)
    columns: Tuple[ColumnSpec, ...]
    references: Tuple[Reference, ...]
    primary_key: str = "id"

    def column(self, name: str) -> ColumnSpec:
        for spec in self.columns:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.name} has no column '{name}'")

    def has_column(self, name: str) -> bool:
        return any(spec.name == name for spec in self.columns)

    def sql_column(self, name: str) -> Column:
        # Table keys follow the python attribute names, so look up by SQL name
        for column in self.table.columns:
            if column.name == name:
                return column
        raise KeyError(f"{self.name} has no column '{name}'")

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.columns)

    @property
    def writable_columns(self) -> Tuple[ColumnSpec, ...]:
        return tuple(spec for spec in self.columns if spec.writable)

    @property
    def required_columns(self) -> Tuple[ColumnSpec, ...]:
        return tuple(
            spec
            for spec in self.writable_columns
            if not spec.nullable and not spec.has_default
        )

    def reference_to(self, target: str) -> Reference:
        matches = [ref for ref in self.references if ref.target == target]
        if not matches:
            raise KeyError(f"{self.name} does not reference {target}")
        if len(matches) > 1:
            raise KeyError(f"{self.name} references {target} more than once")
        return matches[0]


def _semantic_type(column: Column) -> str:
    # Float and REAL are Numeric subclasses
    if isinstance(column.type, Boolean):
        return BOOLEAN
    if isinstance(column.type, (Float, Numeric)):
        return DECIMAL
    if isinstance(column.type, Integer):
        return INTEGER
    if isinstance(column.type, DateTime):
        return TIMESTAMP
    return TEXT


def _column_spec(column: Column) -> ColumnSpec:
    default = None
    if column.default is not None and column.default.is_scalar:
        default = column.default.arg
    semantic = _semantic_type(column)
    scale = getattr(column.type, "scale", None) if semantic == DECIMAL else None

    return ColumnSpec(
        name=column.name,
        type=semantic,
        nullable=bool(column.nullable) and not column.primary_key,
        default=default,
        has_default=column.default is not None or column.server_default is not None,
        primary_key=column.primary_key,
        generated=bool(column.info.get("generated", False)),
        scale=scale,
    )


def _references(table: Table) -> Tuple[Reference, ...]:
    refs = []
    for column in table.columns:
        for fk in column.foreign_keys:
            refs.append(
                Reference(
                    entity=table.name,
                    column=column.name,
                    target=fk.column.table.name,
                    target_column=fk.column.name,
                    on_delete=column.info.get("on_delete", models.KEEP),
                )
            )
    return tuple(refs)


def build_registry(metadata=models.Base.metadata) -> Dict[str, EntitySpec]:
    """
    Build entity specs from SQLAlchemy table metadata.

    Args:
        metadata: MetaData holding the declared tables.

    Returns:
        Dict of table name -> EntitySpec, parents before children.
    """
    registry = {}
    for table in metadata.sorted_tables:
        registry[table.name] = EntitySpec(
            name=table.name,
            table=table,
            columns=tuple(_column_spec(column) for column in table.columns),
            references=_references(table),
        )
    return registry


REGISTRY = build_registry()


def get_entity(name: str) -> EntitySpec:
    try:
        return REGISTRY[name]
    except KeyError:
        raise KeyError(f"Unknown entity '{name}'") from None


def entities() -> List[EntitySpec]:
    """All entities, parents before children."""
    return list(REGISTRY.values())


def dependents_of(name: str) -> List[Reference]:
    """References from any entity pointing at `name`."""
    get_entity(name)
    return [
        ref
        for spec in REGISTRY.values()
        for ref in spec.references
        if ref.target == name
    ]


def resolve(entity: "EntitySpec | str") -> EntitySpec:
    return entity if isinstance(entity, EntitySpec) else get_entity(entity)


def joined_column(spec: ColumnSpec, label: Optional[str] = None) -> ColumnSpec:
    """Column spec for a column reached through an outer join (always nullable)."""
    return ColumnSpec(
        name=label or spec.name,
        type=spec.type,
        nullable=True,
        default=spec.default,
        has_default=spec.has_default,
        primary_key=False,
        generated=spec.generated,
        scale=spec.scale,
    )
