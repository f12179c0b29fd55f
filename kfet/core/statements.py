"""
STATEMENT BUILDER - logical statements compiled to SQLite text + params

Purpose:
    Build select / insert / update / delete statements against the
    registry with SQLAlchemy Core, compile them for SQLite (qmark style)
    and hand back an inert Statement. Nothing runs until a Statement is
    passed to the executor.

Example:
    stmt = select("customers", joins=[Join("categories", {"dept": "dept"})])
    stmt.sql     -> 'SELECT customers.id, ... LEFT OUTER JOIN categories ...'
    stmt.params  -> ()
"""

import operator
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import sqlalchemy as sa
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateTable, DropTable

from kfet.core import codec, registry
from kfet.core.errors import RecordValidationError
from kfet.core.registry import ColumnSpec, EntitySpec


# Channel methods: "all" returns rows, "get" must return at least one row,
# "run" is a write whose rows nobody reads
ALL = "all"
GET = "get"
RUN = "run"

DIALECT = sqlite.dialect()

OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

Filters = Union[Mapping[str, Any], Sequence[Tuple[str, str, Any]], None]


@dataclass(frozen=True)
class Statement:
    """Compiled SQL text, positional params and the columns its rows carry."""

    sql: str
    params: Tuple[Any, ...] = ()
    method: str = ALL
    columns: Tuple[ColumnSpec, ...] = ()
    entity: Optional[str] = None

    def with_method(self, method: str) -> "Statement":
        return Statement(self.sql, self.params, method, self.columns, self.entity)


@dataclass(frozen=True)
class Join:
    """
    LEFT OUTER JOIN along the base entity's reference to `entity`.

    `columns` maps output label -> joined column name; empty means all
    columns of the joined entity under their own names.
    """

    entity: str
    columns: Dict[str, str] = field(default_factory=dict)


def _compile(
    clause,
    entity: Optional[str],
    method: str,
    columns: Sequence[ColumnSpec] = (),
) -> Statement:
    compiled = clause.compile(dialect=DIALECT)
    # DDL compiles without bind parameters
    values = compiled.params or {}
    names = getattr(compiled, "positiontup", None) or []
    return Statement(
        sql=str(compiled),
        params=tuple(values[name] for name in names),
        method=method,
        columns=tuple(columns),
        entity=entity,
    )


def _column(entity: EntitySpec, name: str) -> Tuple[ColumnSpec, sa.Column]:
    try:
        return entity.column(name), entity.sql_column(name)
    except KeyError:
        raise RecordValidationError(f"{entity.name} has no column '{name}'", [name])


def _where(entity: EntitySpec, filters: Filters) -> List[Any]:
    """Conjunction of equality/comparison predicates on declared columns."""
    if not filters:
        return []

    if isinstance(filters, Mapping):
        triples = [(name, "==", value) for name, value in filters.items()]
    else:
        triples = list(filters)

    clauses = []
    for name, op, value in triples:
        if op not in OPERATORS:
            raise RecordValidationError(f"unsupported operator '{op}'", [name])
        spec, column = _column(entity, name)
        clauses.append(OPERATORS[op](column, codec.to_scalar(entity.name, spec, value)))
    return clauses


def _by_column(entity: EntitySpec, values: Mapping[str, Any]) -> Dict[sa.Column, Any]:
    return {entity.sql_column(name): value for name, value in values.items()}


def _touch(entity: EntitySpec, values: Dict[sa.Column, Any]) -> Dict[sa.Column, Any]:
    # updated_at is owned by the store, refresh it on every write
    if entity.has_column("updated_at"):
        values[entity.sql_column("updated_at")] = sa.func.current_timestamp()
    return values


def _pk(entity: EntitySpec, id: int):
    spec, column = _column(entity, entity.primary_key)
    return column == codec.to_scalar(entity.name, spec, id)


# ============================================================================
# READ
# ============================================================================


def select(
    entity: "EntitySpec | str",
    projection: Optional[Sequence[str]] = None,
    joins: Sequence[Join] = (),
    filters: Filters = None,
    order_by: Optional[Sequence[str]] = None,
) -> Statement:
    """
    Build a SELECT on one entity with optional outer joins and filters.

    Args:
        entity: Base entity.
        projection: Base columns to return, defaults to all declared columns.
        joins: Outer joins along declared references; joined columns are
            appended after the base columns and are always nullable.
        filters: Mapping of equalities or (column, op, value) triples on
            base columns, combined with AND.
        order_by: Base columns to sort on, defaults to the primary key.

    Returns:
        Statement whose `columns` describe each returned position.
    """
    entity = registry.resolve(entity)

    specs: List[ColumnSpec] = []
    selected: List[Any] = []
    for name in projection or entity.column_names:
        spec, column = _column(entity, name)
        specs.append(spec)
        selected.append(column)

    source = entity.table
    for join in joins:
        target = registry.resolve(join.entity)
        try:
            ref = entity.reference_to(target.name)
        except KeyError as error:
            raise RecordValidationError(str(error))
        source = source.outerjoin(
            target.table,
            entity.sql_column(ref.column) == target.sql_column(ref.target_column),
        )
        labels = join.columns or {name: name for name in target.column_names}
        for label, name in labels.items():
            spec, column = _column(target, name)
            specs.append(registry.joined_column(spec, label))
            selected.append(column.label(label))

    query = sa.select(*selected).select_from(source)

    clauses = _where(entity, filters)
    if clauses:
        query = query.where(*clauses)

    query = query.order_by(
        *[_column(entity, name)[1] for name in order_by or [entity.primary_key]]
    )
    return _compile(query, entity.name, ALL, specs)


def get(entity: "EntitySpec | str", id: int, joins: Sequence[Join] = ()) -> Statement:
    """SELECT one row by primary key."""
    entity = registry.resolve(entity)
    return select(entity, joins=joins, filters={entity.primary_key: id})


def count(entity: "EntitySpec | str", filters: Filters = None) -> Statement:
    entity = registry.resolve(entity)
    query = sa.select(sa.func.count().label("count")).select_from(entity.table)
    clauses = _where(entity, filters)
    if clauses:
        query = query.where(*clauses)
    spec = ColumnSpec(name="count", type=registry.INTEGER, nullable=False)
    return _compile(query, entity.name, ALL, [spec])


def distinct(entity: "EntitySpec | str", column: str) -> Statement:
    """Sorted distinct values of one column."""
    entity = registry.resolve(entity)
    spec, sql_column = _column(entity, column)
    query = sa.select(sql_column).distinct().order_by(sql_column)
    return _compile(query, entity.name, ALL, [spec])


# ============================================================================
# WRITE
# ============================================================================


def insert(entity: "EntitySpec | str", record: Any) -> Statement:
    """
    INSERT one record, returning the stored row.

    Raises:
        RecordValidationError: if a non-nullable column without default
            is missing (checked before anything is dispatched).
    """
    entity = registry.resolve(entity)
    values = codec.encode_insert(entity, record)
    query = (
        sa.insert(entity.table)
        .values(_by_column(entity, values))
        .returning(*entity.table.columns)
    )
    return _compile(query, entity.name, ALL, entity.columns)


def update(
    entity: "EntitySpec | str", id: int, record: Any, method: str = ALL
) -> Statement:
    """UPDATE the provided fields of one row, scoped by primary key."""
    entity = registry.resolve(entity)
    values = codec.encode_update(entity, record)
    query = (
        sa.update(entity.table)
        .where(_pk(entity, id))
        .values(_touch(entity, _by_column(entity, values)))
        .returning(*entity.table.columns)
    )
    return _compile(query, entity.name, method, entity.columns)


def increment(
    entity: "EntitySpec | str", id: int, column: str, amount: Any, method: str = GET
) -> Statement:
    """
    Relative UPDATE `column = coalesce(column, 0) + amount` on one row.

    The new value is computed by the store inside the write, so two
    increments never overwrite each other.
    """
    entity = registry.resolve(entity)
    spec, sql_column = _column(entity, column)
    if spec.type not in (registry.DECIMAL, registry.INTEGER) or not spec.writable:
        raise RecordValidationError(f"{entity.name}.{column} is not a number", [column])
    if amount is None:
        raise RecordValidationError(f"{entity.name}.{column}: amount is required", [column])

    delta = codec.to_scalar(entity.name, spec, amount)
    total = sa.func.coalesce(sql_column, 0) + delta
    if spec.scale is not None:
        # Keep the stored balance at the column's scale, no float residue
        total = sa.func.round(total, sa.literal_column(str(spec.scale)))
    values = _touch(entity, {sql_column: total})
    query = (
        sa.update(entity.table)
        .where(_pk(entity, id))
        .values(values)
        .returning(*entity.table.columns)
    )
    return _compile(query, entity.name, method, entity.columns)


def update_where(entity: "EntitySpec | str", filters: Filters, record: Any) -> Statement:
    """UPDATE every row matching a non-empty filter."""
    entity = registry.resolve(entity)
    clauses = _where(entity, filters)
    if not clauses:
        raise RecordValidationError(f"{entity.name}: refusing an unscoped update")
    values = codec.encode_update(entity, record)
    query = (
        sa.update(entity.table)
        .where(*clauses)
        .values(_touch(entity, _by_column(entity, values)))
    )
    return _compile(query, entity.name, RUN)


def delete(entity: "EntitySpec | str", id: int, method: str = ALL) -> Statement:
    """DELETE one row by primary key, returning the removed row."""
    entity = registry.resolve(entity)
    query = (
        sa.delete(entity.table)
        .where(_pk(entity, id))
        .returning(*entity.table.columns)
    )
    return _compile(query, entity.name, method, entity.columns)


def delete_where(entity: "EntitySpec | str", filters: Filters) -> Statement:
    """DELETE every row matching a non-empty filter."""
    entity = registry.resolve(entity)
    clauses = _where(entity, filters)
    if not clauses:
        raise RecordValidationError(f"{entity.name}: refusing an unscoped delete")
    return _compile(sa.delete(entity.table).where(*clauses), entity.name, RUN)


# ============================================================================
# SCHEMA
# ============================================================================


def create_table(entity: "EntitySpec | str") -> Statement:
    entity = registry.resolve(entity)
    return _compile(CreateTable(entity.table, if_not_exists=True), entity.name, RUN)


def drop_table(entity: "EntitySpec | str") -> Statement:
    entity = registry.resolve(entity)
    return _compile(DropTable(entity.table, if_exists=True), entity.name, RUN)
