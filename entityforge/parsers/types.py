"""
SQL type keyword to canonical domain type mapping.

The mapper is fail-open: an unknown keyword maps to ``String`` so a single
unusual column type never aborts parsing of its table.
"""
import re
from typing import Dict, Optional, Tuple

from entityforge.constants import DomainType

SQL_TO_DOMAIN: Dict[str, DomainType] = {
    # String types
    'VARCHAR': DomainType.STRING,
    'CHAR': DomainType.STRING,
    'TEXT': DomainType.STRING,
    'CHARACTER': DomainType.STRING,
    'CHARACTER VARYING': DomainType.STRING,
    'NVARCHAR': DomainType.STRING,
    'CITEXT': DomainType.STRING,
    # Numeric types
    'INT': DomainType.INTEGER,
    'INTEGER': DomainType.INTEGER,
    'SERIAL': DomainType.INTEGER,
    'SMALLINT': DomainType.INTEGER,
    'SMALLSERIAL': DomainType.INTEGER,
    'INT2': DomainType.INTEGER,
    'INT4': DomainType.INTEGER,
    'BIGINT': DomainType.LONG,
    'BIGSERIAL': DomainType.LONG,
    'INT8': DomainType.LONG,
    'DECIMAL': DomainType.BIG_DECIMAL,
    'NUMERIC': DomainType.BIG_DECIMAL,
    'MONEY': DomainType.BIG_DECIMAL,
    'DOUBLE PRECISION': DomainType.DOUBLE,
    'DOUBLE': DomainType.DOUBLE,
    'FLOAT8': DomainType.DOUBLE,
    'REAL': DomainType.FLOAT,
    'FLOAT': DomainType.FLOAT,
    'FLOAT4': DomainType.FLOAT,
    # Boolean
    'BOOLEAN': DomainType.BOOLEAN,
    'BOOL': DomainType.BOOLEAN,
    # Date/Time
    'DATE': DomainType.LOCAL_DATE,
    'TIMESTAMP': DomainType.LOCAL_DATE_TIME,
    'TIMESTAMPTZ': DomainType.LOCAL_DATE_TIME,
    'TIMESTAMP WITHOUT TIME ZONE': DomainType.LOCAL_DATE_TIME,
    'TIMESTAMP WITH TIME ZONE': DomainType.LOCAL_DATE_TIME,
    'DATETIME': DomainType.LOCAL_DATE_TIME,
    'TIME': DomainType.LOCAL_TIME,
    'TIME WITHOUT TIME ZONE': DomainType.LOCAL_TIME,
    # Other
    'UUID': DomainType.UUID,
    'BYTEA': DomainType.BYTES,
    'BLOB': DomainType.BYTES,
}

_TYPE_PARAMS = re.compile(r'\(([^)]*)\)')


def split_sql_type(sql_type: str) -> Tuple[str, Optional[int]]:
    """
    Splits a column type into its upper-cased base keyword and the first
    numeric parameter: ``varchar(100)`` -> ``('VARCHAR', 100)``,
    ``DECIMAL(10,2)`` -> ``('DECIMAL', 10)``, ``text[]`` -> ``('TEXT', None)``.
    """
    length = None
    match = _TYPE_PARAMS.search(sql_type)
    if match:
        first = match.group(1).split(',')[0].strip()
        if first.isdigit():
            length = int(first)
    base = _TYPE_PARAMS.sub(' ', sql_type)
    base = base.replace('[]', ' ')
    base = " ".join(base.upper().split())
    return base, length


def map_sql_type(sql_type: str) -> DomainType:
    base, _ = split_sql_type(sql_type)
    return SQL_TO_DOMAIN.get(base, DomainType.STRING)


# Leading words of every known type, for telling "key VARCHAR(20)" (a column)
# apart from "KEY idx_name (col)" (an index clause)
TYPE_KEYWORDS = frozenset(k.split()[0] for k in SQL_TO_DOMAIN)
