import re
from typing import Dict, Iterable, List, Optional, Tuple

import sqlparse
from sqlparse.exceptions import SQLParseError

from entityforge.constants import (
    CANVAS_MAX_X,
    CANVAS_ORIGIN,
    CANVAS_STEP_X,
    CANVAS_STEP_Y,
    DEFAULT_BASE_FIELDS,
    DEFAULT_STRING_LENGTH,
    DomainType,
    FKAction,
    RelationType,
    SQLKeyword,
    TABLE_CONSTRAINT_KEYWORDS,
    ValidationType,
)
from entityforge.exceptions import StatementParseError
from entityforge.logging_config import ContextAdapter, get_logger
from entityforge.models import (
    Column,
    DataModel,
    Entity,
    Field,
    ForeignKey,
    ForeignKeyConfig,
    Relation,
    Table,
    ValidationRule,
)
from entityforge.parsers.base import BaseParser
from entityforge.parsers.naming import column_to_field_name, table_to_entity_name, to_pascal_case, to_snake_case
from entityforge.parsers.types import TYPE_KEYWORDS, map_sql_type, split_sql_type
from entityforge.parsers.utils import (
    IDENTIFIER,
    QUALIFIED_IDENTIFIER,
    clean_name,
    extract_parenthesized,
    mask_string_literals,
    normalize_whitespace,
    split_definitions,
    split_statements,
    strip_comments,
)

logger = get_logger("parser")

CREATE_TABLE = f"{SQLKeyword.CREATE.value} {SQLKeyword.TABLE.value}"
ALTER_TABLE = f"{SQLKeyword.ALTER.value} {SQLKeyword.TABLE.value}"

_CREATE_TABLE_HEAD = re.compile(
    r'^CREATE\s+(?:(?:GLOBAL|LOCAL)\s+)?(?:(?:TEMPORARY|TEMP|UNLOGGED)\s+)?TABLE\s+'
    r'(?:IF\s+NOT\s+EXISTS\s+)?'
    rf'(?P<name>{QUALIFIED_IDENTIFIER})\s*\(',
    re.IGNORECASE,
)
_ALTER_TABLE_HEAD = re.compile(
    rf'^ALTER\s+TABLE\s+(?:IF\s+EXISTS\s+)?(?:ONLY\s+)?(?P<name>{QUALIFIED_IDENTIFIER})',
    re.IGNORECASE,
)
_ADD_CLAUSE = re.compile(r'\bADD\b', re.IGNORECASE)
_FOREIGN_KEY = re.compile(r'\bFOREIGN\s+KEY\s*\((?P<cols>[^)]+)\)', re.IGNORECASE)
_CONSTRAINT_NAME = re.compile(rf'\bCONSTRAINT\s+(?P<name>{IDENTIFIER})', re.IGNORECASE)
_REFERENCES = re.compile(
    rf'\bREFERENCES\s+(?P<table>{QUALIFIED_IDENTIFIER})\s*(?:\((?P<cols>[^)]+)\))?',
    re.IGNORECASE,
)
_FK_ACTION = r'(CASCADE|SET\s+NULL|SET\s+DEFAULT|RESTRICT|NO\s+ACTION)'
_ON_DELETE = re.compile(rf'\bON\s+DELETE\s+{_FK_ACTION}', re.IGNORECASE)
_ON_UPDATE = re.compile(rf'\bON\s+UPDATE\s+{_FK_ACTION}', re.IGNORECASE)
_PRIMARY_KEY_COLUMNS = re.compile(r'\bPRIMARY\s+KEY\s*\((?P<cols>[^)]+)\)', re.IGNORECASE)
_UNIQUE_COLUMNS = re.compile(r'\bUNIQUE\b[^(]*\((?P<cols>[^)]+)\)', re.IGNORECASE)

_COLUMN_DEF = re.compile(
    rf'^(?P<name>{IDENTIFIER})\s+'
    r'(?P<type>[A-Za-z_]\w*'
    r'(?:\s+(?:VARYING|PRECISION|(?:WITH|WITHOUT)\s+TIME\s+ZONE))?'
    r'(?:\s*\([^)]*\))?'
    r'(?:\s*\[\s*\])*)',
    re.IGNORECASE,
)
_NOT_NULL = re.compile(r'\bNOT\s+NULL\b')
_UNIQUE = re.compile(r'\bUNIQUE\b')
_PRIMARY_KEY = re.compile(r'\bPRIMARY\s+KEY\b')
_DEFAULT = re.compile(
    r"\bDEFAULT\s+(?P<value>[Ee]?'(?:''|\\'|[^'])*'|-?\d+(?:\.\d+)?|\w+(?:\s*\([^)]*\))?)",
    re.IGNORECASE,
)


def _split_names(names: str) -> List[str]:
    return [clean_name(n) for n in names.split(',') if n.strip()]


def _normalize_action(action: Optional[str]) -> Optional[str]:
    if not action:
        return None
    normalized = "_".join(action.upper().split())
    if normalized in FKAction.__members__:
        return FKAction[normalized].value
    logger.debug(f"Unsupported referential action {action}, using {FKAction.NO_ACTION.value}")
    return None


def _extract_actions(text: str) -> Tuple[Optional[str], Optional[str]]:
    on_delete = _ON_DELETE.search(text)
    on_update = _ON_UPDATE.search(text)
    return (
        _normalize_action(on_delete.group(1)) if on_delete else None,
        _normalize_action(on_update.group(1)) if on_update else None,
    )


class DDLParser(BaseParser):
    """
    Turns CREATE TABLE / ALTER TABLE ... FOREIGN KEY statements into a
    design model of entities and ManyToOne relations.

    Parsing is best effort: statements that are not DDL are ignored, a
    statement that fails is logged and skipped, and foreign keys to tables
    absent from the input are dropped. ``parse`` never raises.

    Args:
        base_fields: Column names to leave out of every entity because the
            downstream generator's base entity supplies them. Defaults to
            ``DEFAULT_BASE_FIELDS``; pass an empty iterable to keep all columns.
    """

    def __init__(self, base_fields: Optional[Iterable[str]] = None):
        if base_fields is None:
            base_fields = DEFAULT_BASE_FIELDS
        self.base_fields = frozenset(f.lower() for f in base_fields)

    def parse(self, sql_content: str) -> DataModel:
        statements = self._preprocess(sql_content)

        # First pass: register every table before any foreign key is read,
        # so tables may be declared in any order
        tables: Dict[str, Table] = {}
        alter_statements = []
        for index, statement in enumerate(statements, start=1):
            log = logger.bind(statement_index=index)
            kind = self._classify(statement, log)
            if kind == CREATE_TABLE:
                table = self._guarded(self._extract_create_table, statement, log.bind(statement_type=kind))
                if table is None:
                    continue
                key = table.name.lower()
                if key in tables:
                    log.info(f"Table {table.name} declared twice, keeping the last declaration",
                             extra={'table_name': table.name, 'operation': 'register'})
                tables[key] = table
            elif kind == ALTER_TABLE:
                alter_statements.append((index, statement))
            else:
                log.debug(f"Ignored statement (not CREATE TABLE / ALTER TABLE FOREIGN KEY): {statement[:50]}...")

        # Second pass: attach ALTER TABLE foreign keys to their source tables
        for index, statement in alter_statements:
            log = logger.bind(statement_index=index, statement_type=ALTER_TABLE)
            attached = self._guarded(self._extract_alter_table, statement, log)
            if not attached:
                continue
            table_name, foreign_keys = attached
            table = tables.get(table_name.lower())
            if table is None:
                log.debug(f"Dropping foreign keys of unknown table {table_name}",
                          extra={'table_name': table_name, 'operation': 'alter'})
                continue
            table.foreign_keys.extend(foreign_keys)

        model = DataModel()
        entity_ids = self._build_entities(tables, model)
        self._resolve_relations(tables, entity_ids, model)
        return model

    # ------------------------------------------------------------------
    # Preprocessing and classification
    # ------------------------------------------------------------------

    def _preprocess(self, sql_content: str) -> List[str]:
        if not sql_content or not sql_content.strip():
            return []
        cleaned = strip_comments(sql_content)
        return [normalize_whitespace(s) for s in split_statements(cleaned)]

    def _classify(self, statement: str, log: ContextAdapter) -> Optional[str]:
        try:
            parsed = sqlparse.parse(statement)
        except SQLParseError as e:
            log.warning(f"sqlparse could not tokenize statement: {e}")
            return None
        if not parsed:
            return None

        stmt_type = parsed[0].get_type()
        if stmt_type == SQLKeyword.CREATE.value and _CREATE_TABLE_HEAD.match(statement):
            return CREATE_TABLE
        if stmt_type == SQLKeyword.ALTER.value and _ALTER_TABLE_HEAD.match(statement) and _FOREIGN_KEY.search(statement):
            return ALTER_TABLE
        return None

    def _guarded(self, extract, statement: str, log: ContextAdapter):
        """Runs one extractor so that a failing statement cannot abort the parse."""
        try:
            return extract(statement)
        except StatementParseError as e:
            log.warning(str(e))
        except (SQLParseError, ValueError, IndexError, AttributeError) as e:
            log.warning(f"Failed to parse statement ({e}): {statement[:100]}")
        return None

    # ------------------------------------------------------------------
    # CREATE TABLE
    # ------------------------------------------------------------------

    def _extract_create_table(self, statement: str) -> Table:
        head = _CREATE_TABLE_HEAD.match(statement)
        if not head:
            raise StatementParseError(statement, "Not a CREATE TABLE statement")

        table_name = clean_name(head.group('name'))
        body = extract_parenthesized(statement, head.end() - 1)
        if body is None:
            raise StatementParseError(statement, f"Unclosed column list in table {table_name}")

        logger.debug(f"Extracted Table Name: {table_name}",
                     extra={'table_name': table_name, 'operation': 'create'})
        table = Table(name=table_name)
        unique_columns = []

        for definition in split_definitions(body):
            if self._is_table_constraint(definition):
                self._process_constraint(definition, table, unique_columns)
            else:
                self._process_column(definition, table)

        for col_name in table.primary_key:
            column = table.get_column(col_name)
            if column:
                column.is_primary_key = True
                column.is_nullable = False
                # A composite key does not make each of its columns unique
                if len(table.primary_key) == 1:
                    column.is_unique = True

        for col_name in unique_columns:
            column = table.get_column(col_name)
            if column:
                column.is_unique = True

        return table

    def _is_table_constraint(self, definition: str) -> bool:
        words = definition.split(None, 2)
        if words[0].upper() not in TABLE_CONSTRAINT_KEYWORDS:
            return False
        if len(words) < 2:
            return True
        # "key VARCHAR(20)" is a column named key, "KEY idx (col)" is an index
        second = re.match(r'[A-Za-z_]\w*', words[1])
        return not (second and second.group(0).upper() in TYPE_KEYWORDS)

    def _process_constraint(self, definition: str, table: Table, unique_columns: List[str]):
        if _FOREIGN_KEY.search(definition):
            fk = self._parse_foreign_key_clause(definition)
            if fk:
                table.foreign_keys.append(fk)
            return

        pk = _PRIMARY_KEY_COLUMNS.search(definition)
        if pk:
            table.primary_key = _split_names(pk.group('cols'))
            return

        unique = _UNIQUE_COLUMNS.search(definition)
        if unique:
            cols = _split_names(unique.group('cols'))
            # Only a single-column unique constraint makes that column unique
            if len(cols) == 1:
                unique_columns.append(cols[0])
            return

        logger.debug(f"Skipping table constraint: {definition[:50]}",
                     extra={'table_name': table.name})

    def _process_column(self, definition: str, table: Table):
        match = _COLUMN_DEF.match(definition)
        if not match:
            logger.debug(f"Skipping unrecognized column definition: {definition[:50]}",
                         extra={'table_name': table.name})
            return

        data_type = " ".join(match.group('type').split())
        _, length = split_sql_type(data_type)
        column = Column(name=clean_name(match.group('name')), data_type=data_type, length=length)

        rest = definition[match.end():]
        scan = mask_string_literals(rest).upper()

        if _NOT_NULL.search(scan):
            column.is_nullable = False
        if _UNIQUE.search(scan):
            column.is_unique = True
        if _PRIMARY_KEY.search(scan):
            column.is_primary_key = True
            column.is_nullable = False
            column.is_unique = True

        default = _DEFAULT.search(rest)
        if default:
            column.default_value = default.group('value')

        if SQLKeyword.REFERENCES.value in scan:
            ref = _REFERENCES.search(rest)
            if ref:
                on_delete, on_update = _extract_actions(rest)
                column.references = ForeignKey(
                    column_names=[column.name],
                    ref_table=clean_name(ref.group('table')),
                    ref_column_names=_split_names(ref.group('cols') or ''),
                    on_delete=on_delete,
                    on_update=on_update,
                )
                table.foreign_keys.append(column.references)

        table.columns.append(column)

    # ------------------------------------------------------------------
    # Foreign keys
    # ------------------------------------------------------------------

    def _parse_foreign_key_clause(self, clause: str) -> Optional[ForeignKey]:
        fk = _FOREIGN_KEY.search(clause)
        if not fk:
            return None
        ref = _REFERENCES.search(clause, fk.end())
        if not ref:
            logger.debug(f"FOREIGN KEY without REFERENCES: {clause[:50]}")
            return None

        constraint = _CONSTRAINT_NAME.search(clause)
        on_delete, on_update = _extract_actions(clause[ref.end():])
        return ForeignKey(
            name=clean_name(constraint.group('name')) if constraint else None,
            column_names=_split_names(fk.group('cols')),
            ref_table=clean_name(ref.group('table')),
            ref_column_names=_split_names(ref.group('cols') or ''),
            on_delete=on_delete,
            on_update=on_update,
        )

    def _extract_alter_table(self, statement: str) -> Tuple[str, List[ForeignKey]]:
        head = _ALTER_TABLE_HEAD.match(statement)
        if not head:
            raise StatementParseError(statement, "Not an ALTER TABLE statement")

        table_name = clean_name(head.group('name'))
        # One ALTER TABLE may carry several comma-separated ADD clauses
        clauses = _ADD_CLAUSE.split(statement[head.end():])[1:]
        foreign_keys = []
        for clause in clauses:
            fk = self._parse_foreign_key_clause(clause)
            if fk:
                foreign_keys.append(fk)

        if not foreign_keys:
            raise StatementParseError(statement, f"No foreign key found for table {table_name}")
        return table_name, foreign_keys

    # ------------------------------------------------------------------
    # Model assembly
    # ------------------------------------------------------------------

    def _build_entities(self, tables: Dict[str, Table], model: DataModel) -> Dict[str, str]:
        entity_ids = {}
        used_names = set()
        pos_x, pos_y = CANVAS_ORIGIN

        for key, table in tables.items():
            entity = Entity(
                id=f"entity-{len(model.entities) + 1}",
                name=self._unique_entity_name(table.name, used_names),
                table_name=table.name,
                fields=self._build_fields(table),
                position={"x": pos_x, "y": pos_y},
            )
            model.entities.append(entity)
            entity_ids[key] = entity.id

            pos_x += CANVAS_STEP_X
            if pos_x > CANVAS_MAX_X:
                pos_x = CANVAS_ORIGIN[0]
                pos_y += CANVAS_STEP_Y

        return entity_ids

    def _unique_entity_name(self, table_name: str, used_names: set) -> str:
        base = table_to_entity_name(table_name) or to_pascal_case(table_name) or "Entity"
        name = base
        suffix = 2
        while name in used_names:
            name = f"{base}{suffix}"
            suffix += 1
        used_names.add(name)
        return name

    def _is_base_field(self, column_name: str) -> bool:
        # "createdAt" and "CREATED_AT" both match created_at
        return (column_name.lower() in self.base_fields
                or to_snake_case(column_name).lower() in self.base_fields)

    def _build_fields(self, table: Table) -> List[Field]:
        log = logger.bind(table_name=table.name, operation='fields')
        fields = []
        seen = set()
        for column in table.columns:
            if self._is_base_field(column.name):
                log.debug(f"Skipping base field {column.name}")
                continue

            name = column_to_field_name(column.name)
            if not name:
                continue
            if name in seen:
                log.warning(f"Duplicate field {name} from column {column.name}, keeping the first")
                continue
            seen.add(name)
            fields.append(self._create_field(column, name))
        return fields

    def _create_field(self, column: Column, name: str) -> Field:
        domain_type = map_sql_type(column.data_type)
        validations = []

        if not column.is_nullable:
            if domain_type == DomainType.STRING:
                validations.append(ValidationRule(type=ValidationType.NOT_BLANK.value))
            else:
                validations.append(ValidationRule(type=ValidationType.NOT_NULL.value))

        if domain_type == DomainType.STRING and column.length and column.length != DEFAULT_STRING_LENGTH:
            validations.append(ValidationRule(type=ValidationType.SIZE.value, value=f"max = {column.length}"))

        return Field(
            name=name,
            column_name=column.name,
            type=domain_type.value,
            nullable=column.is_nullable,
            unique=column.is_unique,
            length=column.length,
            default_value=column.default_value,
            validations=validations,
        )

    def _resolve_relations(self, tables: Dict[str, Table], entity_ids: Dict[str, str], model: DataModel):
        seen = set()
        for key, table in tables.items():
            source_id = entity_ids[key]
            for fk in table.foreign_keys:
                target_id = entity_ids.get(fk.ref_table.lower())
                if target_id is None:
                    logger.debug(f"Dropping foreign key to unknown table {fk.ref_table}",
                                 extra={'table_name': table.name, 'operation': 'relations'})
                    continue
                if not fk.column_names:
                    continue

                column_name = fk.column_names[0]
                dedupe_key = (source_id, target_id, column_name.lower())
                if dedupe_key in seen:
                    continue
                seen.add(dedupe_key)

                column = table.get_column(column_name)
                model.relations.append(Relation(
                    id=f"relation-{len(model.relations) + 1}",
                    type=RelationType.MANY_TO_ONE.value,
                    source_entity_id=source_id,
                    target_entity_id=target_id,
                    source_field_name=column_to_field_name(column_name),
                    foreign_key=ForeignKeyConfig(
                        column_name=column_name,
                        nullable=column.is_nullable if column else True,
                        on_delete=fk.on_delete or FKAction.NO_ACTION.value,
                        on_update=fk.on_update or FKAction.NO_ACTION.value,
                    ),
                ))


def parse_sql(sql: str, base_fields: Optional[Iterable[str]] = None) -> DataModel:
    """
    Parses raw DDL text into a DataModel of entities and relations.

    Args:
        sql: Zero or more semicolon-terminated SQL statements
        base_fields: Optional override of the base/audit column denylist

    Returns:
        DataModel with ``entities`` and ``relations``; both empty when the
        input holds no recognizable DDL
    """
    return DDLParser(base_fields=base_fields).parse(sql)
