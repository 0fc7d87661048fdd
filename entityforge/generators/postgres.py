import re
from typing import Dict, List

from entityforge.constants import (
    FKAction,
    RESERVED_KEYWORDS,
    RelationType,
    ValidationType,
)
from entityforge.generators.base import BaseGenerator
from entityforge.logging_config import get_logger
from entityforge.models import DataModel, Entity, Field, Relation
from entityforge.parsers.naming import to_snake_case

logger = get_logger("generator")

DOMAIN_TO_SQL: Dict[str, str] = {
    'String': 'VARCHAR(255)',
    'Long': 'BIGINT',
    'Integer': 'INTEGER',
    'Double': 'DOUBLE PRECISION',
    'Float': 'REAL',
    'BigDecimal': 'DECIMAL(19,2)',
    'Boolean': 'BOOLEAN',
    'LocalDate': 'DATE',
    'LocalDateTime': 'TIMESTAMP',
    'LocalTime': 'TIME',
    'Instant': 'TIMESTAMP WITH TIME ZONE',
    'UUID': 'UUID',
    'byte[]': 'BYTEA',
}

# Columns every table inherits from the generator's base entity
BASE_COLUMNS = [
    ('estado', "VARCHAR(20) DEFAULT 'ACTIVO'"),
    ('fecha_creacion', 'TIMESTAMP DEFAULT CURRENT_TIMESTAMP'),
    ('fecha_actualizacion', 'TIMESTAMP DEFAULT CURRENT_TIMESTAMP'),
    ('creado_por', 'VARCHAR(100)'),
    ('modificado_por', 'VARCHAR(100)'),
    ('version', 'BIGINT DEFAULT 0'),
]

_SIZE_MAX = re.compile(r'max\s*=\s*(\d+)')
_SIMPLE_IDENT = re.compile(r'^[a-z_][a-z0-9_]*$')


class PostgresGenerator(BaseGenerator):
    """Renders a design model as PostgreSQL DDL the DDL parser can read back."""

    def generate(self, model: DataModel, project_name: str = "API Project") -> str:
        entities_by_id = {e.id: e for e in model.entities}

        sql = [
            '-- ===========================================',
            '-- Generated by EntityForge',
            f'-- Project: {project_name}',
            '-- ===========================================',
            '',
        ]

        # Tables without foreign keys first; sorted() is stable
        ordered = sorted(
            model.entities,
            key=lambda e: bool(self._outgoing_relations(e, model.relations, entities_by_id)),
        )
        for entity in ordered:
            sql.append(self.create_table_sql(entity, model.relations, entities_by_id))
            sql.append('')

        return "\n".join(sql)

    def quote_ident(self, ident: str) -> str:
        if _SIMPLE_IDENT.match(ident) and ident.upper() not in RESERVED_KEYWORDS:
            return ident
        return '"' + ident.replace('"', '""') + '"'

    def table_name(self, entity: Entity) -> str:
        return entity.table_name or f"{to_snake_case(entity.name)}s"

    def create_table_sql(self, entity: Entity, relations: List[Relation],
                         entities_by_id: Dict[str, Entity]) -> str:
        table = self.quote_ident(self.table_name(entity))
        outgoing = self._outgoing_relations(entity, relations, entities_by_id)
        base_names = {name for name, _ in BASE_COLUMNS} | {'id'}

        cols = ['    id BIGSERIAL PRIMARY KEY']
        field_columns = set()
        for f in entity.fields:
            column_name = f.column_name or to_snake_case(f.name)
            if column_name.lower() in base_names:
                continue
            field_columns.add(column_name.lower())
            cols.append(f"    {self._col_def(f, column_name)}")

        for relation in outgoing:
            fk_col = self._fk_column(relation, entities_by_id)
            if fk_col.lower() in field_columns:
                continue
            not_null = '' if relation.foreign_key.nullable else ' NOT NULL'
            cols.append(f"    {self.quote_ident(fk_col)} BIGINT{not_null}")

        cols.extend(f"    {name} {definition}" for name, definition in BASE_COLUMNS)

        lines = [f"-- Entity: {entity.name}", f"CREATE TABLE {table} ("]
        lines.append(",\n".join(cols))
        lines.append(");")

        for relation in outgoing:
            lines.append(self._fk_constraint_sql(entity, relation, entities_by_id))
        for relation in outgoing:
            fk_col = self._fk_column(relation, entities_by_id)
            index_name = self.quote_ident(f"idx_{self.table_name(entity)}_{fk_col}")
            lines.append(f"\nCREATE INDEX {index_name} ON {table}({self.quote_ident(fk_col)});")

        logger.debug(f"Generated table for entity {entity.name}",
                     extra={'table_name': self.table_name(entity), 'operation': 'generate'})
        return "\n".join(lines)

    def _col_def(self, f: Field, column_name: str) -> str:
        parts = [self.quote_ident(column_name), self._sql_type(f)]
        if not f.nullable:
            parts.append("NOT NULL")
        if f.unique:
            parts.append("UNIQUE")
        if f.default_value:
            parts.append(f"DEFAULT {f.default_value}")
        return " ".join(parts)

    def _sql_type(self, f: Field) -> str:
        base_type = DOMAIN_TO_SQL.get(f.type, 'VARCHAR(255)')
        if f.type != 'String':
            return base_type

        for rule in f.validations:
            if rule.type == ValidationType.SIZE.value and rule.value:
                match = _SIZE_MAX.search(str(rule.value))
                if match:
                    return f"VARCHAR({match.group(1)})"
        if f.length:
            return f"VARCHAR({f.length})"
        return base_type

    def _outgoing_relations(self, entity: Entity, relations: List[Relation],
                            entities_by_id: Dict[str, Entity]) -> List[Relation]:
        return [
            r for r in relations
            if r.source_entity_id == entity.id
            and r.type in (RelationType.MANY_TO_ONE.value, RelationType.ONE_TO_ONE.value)
            and r.target_entity_id in entities_by_id
        ]

    def _fk_column(self, relation: Relation, entities_by_id: Dict[str, Entity]) -> str:
        if relation.foreign_key.column_name:
            return relation.foreign_key.column_name
        target = entities_by_id[relation.target_entity_id]
        return f"{to_snake_case(target.name)}_id"

    def _fk_constraint_sql(self, entity: Entity, relation: Relation,
                           entities_by_id: Dict[str, Entity]) -> str:
        target = entities_by_id[relation.target_entity_id]
        table_name = self.table_name(entity)
        fk_col = self._fk_column(relation, entities_by_id)
        on_delete = (relation.foreign_key.on_delete or FKAction.NO_ACTION.value).replace('_', ' ')
        on_update = (relation.foreign_key.on_update or FKAction.NO_ACTION.value).replace('_', ' ')
        constraint = self.quote_ident(f"fk_{table_name}_{fk_col}")

        return "\n".join([
            '',
            f"ALTER TABLE {self.quote_ident(table_name)}",
            f"    ADD CONSTRAINT {constraint}",
            f"    FOREIGN KEY ({self.quote_ident(fk_col)})",
            f"    REFERENCES {self.quote_ident(self.table_name(target))}(id)",
            f"    ON DELETE {on_delete}",
            f"    ON UPDATE {on_update};",
        ])
