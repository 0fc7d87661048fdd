"""
EntityForge Constants

Centralized definitions for SQL keywords, domain types and naming
conventions to reduce magic strings throughout the codebase.
"""

from enum import Enum
from typing import FrozenSet


class SQLKeyword(str, Enum):
    """SQL keywords the DDL parser reacts to."""

    # DDL Keywords
    CREATE = "CREATE"
    ALTER = "ALTER"
    TABLE = "TABLE"

    # Constraint Keywords
    PRIMARY = "PRIMARY"
    FOREIGN = "FOREIGN"
    KEY = "KEY"
    UNIQUE = "UNIQUE"
    CHECK = "CHECK"
    CONSTRAINT = "CONSTRAINT"
    REFERENCES = "REFERENCES"
    INDEX = "INDEX"
    EXCLUDE = "EXCLUDE"
    LIKE = "LIKE"


class DomainType(str, Enum):
    """Canonical, language-agnostic field types handed to the code generator."""

    STRING = "String"
    INTEGER = "Integer"
    LONG = "Long"
    DOUBLE = "Double"
    FLOAT = "Float"
    BIG_DECIMAL = "BigDecimal"
    BOOLEAN = "Boolean"
    LOCAL_DATE = "LocalDate"
    LOCAL_DATE_TIME = "LocalDateTime"
    LOCAL_TIME = "LocalTime"
    INSTANT = "Instant"
    UUID = "UUID"
    BYTES = "byte[]"


class RelationType(str, Enum):
    ONE_TO_ONE = "OneToOne"
    MANY_TO_ONE = "ManyToOne"


class FKAction(str, Enum):
    """Referential actions, in the underscore form the editor uses."""

    CASCADE = "CASCADE"
    SET_NULL = "SET_NULL"
    RESTRICT = "RESTRICT"
    NO_ACTION = "NO_ACTION"


class FetchType(str, Enum):
    LAZY = "LAZY"
    EAGER = "EAGER"


class ValidationType(str, Enum):
    NOT_NULL = "NotNull"
    NOT_BLANK = "NotBlank"
    SIZE = "Size"


# Columns the downstream generator's base entity already provides
# (primary key, soft-delete flag, audit trail, optimistic locking).
DEFAULT_BASE_FIELDS: FrozenSet[str] = frozenset({
    "id",
    "estado",
    "fecha_creacion",
    "fecha_actualizacion",
    "creado_por",
    "modificado_por",
    "version",
    "created_at",
    "updated_at",
    "created_by",
    "updated_by",
    "deleted_at",
    "is_deleted",
})

# Definition-list entries starting with one of these are table constraints,
# never columns.
TABLE_CONSTRAINT_KEYWORDS: FrozenSet[str] = frozenset({
    SQLKeyword.CONSTRAINT.value,
    SQLKeyword.PRIMARY.value,
    SQLKeyword.FOREIGN.value,
    SQLKeyword.UNIQUE.value,
    SQLKeyword.CHECK.value,
    SQLKeyword.INDEX.value,
    SQLKeyword.KEY.value,
    SQLKeyword.EXCLUDE.value,
    SQLKeyword.LIKE.value,
})

# Keywords that open a new top-level statement. The splitter cuts at a
# semicolon inside an unclosed parenthesis when one of these follows.
STATEMENT_KEYWORDS: FrozenSet[str] = frozenset({
    "CREATE", "ALTER", "DROP", "INSERT", "UPDATE", "DELETE", "SELECT",
    "COMMENT", "GRANT", "REVOKE", "TRUNCATE", "SET", "BEGIN", "COMMIT",
})

# String columns with this length get no explicit Size validation
DEFAULT_STRING_LENGTH = 255

# Canvas placement grid for freshly imported entities
CANVAS_ORIGIN = (100, 100)
CANVAS_STEP_X = 300
CANVAS_STEP_Y = 250
CANVAS_MAX_X = 900

# Keywords that should NOT be used as unquoted identifiers in generated DDL
RESERVED_KEYWORDS: FrozenSet[str] = frozenset({
    "SELECT", "FROM", "WHERE", "AND", "OR", "NOT", "NULL", "TRUE", "FALSE",
    "INSERT", "UPDATE", "DELETE", "CREATE", "DROP", "ALTER", "TABLE", "INDEX",
    "VIEW", "DATABASE", "SCHEMA", "PRIMARY", "FOREIGN", "KEY", "UNIQUE",
    "CHECK", "CONSTRAINT", "REFERENCES", "DEFAULT", "ON", "CASCADE", "SET",
    "JOIN", "LEFT", "RIGHT", "INNER", "OUTER", "FULL", "CROSS", "NATURAL",
    "GROUP", "BY", "ORDER", "HAVING", "LIMIT", "OFFSET", "UNION", "INTERSECT",
    "EXCEPT", "ALL", "DISTINCT", "AS", "IN", "EXISTS", "BETWEEN", "LIKE",
    "IS", "CASE", "WHEN", "THEN", "ELSE", "END", "IF", "BEGIN", "COMMIT",
    "ROLLBACK", "TRANSACTION", "USER", "ROLE", "GRANT", "REVOKE",
})
