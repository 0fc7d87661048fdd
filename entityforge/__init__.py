"""EntityForge: turn SQL DDL into an entity-relationship design model."""

from entityforge.models import DataModel, Entity, Field, Relation, ForeignKeyConfig
from entityforge.parsers.ddl import DDLParser, parse_sql

__all__ = [
    "DataModel",
    "Entity",
    "Field",
    "Relation",
    "ForeignKeyConfig",
    "DDLParser",
    "parse_sql",
]
