from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from entityforge.constants import FKAction, FetchType, RelationType
from entityforge.exceptions import ModelFormatError


# ---------------------------------------------------------------------------
# Raw DDL structures (what the SQL says)
# ---------------------------------------------------------------------------

@dataclass
class ForeignKey:
    column_names: List[str]
    ref_table: str
    ref_column_names: List[str] = field(default_factory=list)
    name: Optional[str] = None
    on_delete: Optional[str] = None
    on_update: Optional[str] = None


@dataclass
class Column:
    name: str
    data_type: str
    is_nullable: bool = True
    is_unique: bool = False
    is_primary_key: bool = False
    default_value: Optional[str] = None
    length: Optional[int] = None
    references: Optional[ForeignKey] = None

    def __repr__(self):
        return f"Column(name='{self.name}', type='{self.data_type}')"


@dataclass
class Table:
    name: str
    columns: List[Column] = field(default_factory=list)
    foreign_keys: List[ForeignKey] = field(default_factory=list)
    primary_key: List[str] = field(default_factory=list)

    def get_column(self, name: str) -> Optional[Column]:
        lowered = name.lower()
        for col in self.columns:
            if col.name.lower() == lowered:
                return col
        return None


# ---------------------------------------------------------------------------
# Design model (what the studio edits)
# ---------------------------------------------------------------------------

@dataclass
class ValidationRule:
    type: str
    value: Optional[Any] = None

    def to_dict(self):
        data = {"type": self.type}
        if self.value is not None:
            data["value"] = self.value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "ValidationRule":
        return cls(type=data["type"], value=data.get("value"))


@dataclass
class Field:
    name: str
    column_name: str
    type: str
    nullable: bool = True
    unique: bool = False
    length: Optional[int] = None
    default_value: Optional[str] = None
    validations: List[ValidationRule] = field(default_factory=list)

    def to_dict(self):
        data = {
            "name": self.name,
            "columnName": self.column_name,
            "type": self.type,
            "nullable": self.nullable,
            "unique": self.unique,
            "validations": [v.to_dict() for v in self.validations],
        }
        if self.length is not None:
            data["length"] = self.length
        if self.default_value is not None:
            data["defaultValue"] = self.default_value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Field":
        return cls(
            name=data["name"],
            column_name=data.get("columnName", data["name"]),
            type=data.get("type", "String"),
            nullable=data.get("nullable", True),
            unique=data.get("unique", False),
            length=data.get("length"),
            default_value=data.get("defaultValue"),
            validations=[ValidationRule.from_dict(v) for v in data.get("validations", [])],
        )


@dataclass
class Entity:
    id: str
    name: str
    table_name: str
    fields: List[Field] = field(default_factory=list)
    position: Dict[str, int] = field(default_factory=lambda: {"x": 0, "y": 0})

    def get_field(self, name: str) -> Optional[Field]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "tableName": self.table_name,
            "position": dict(self.position),
            "fields": [f.to_dict() for f in self.fields],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Entity":
        return cls(
            id=data["id"],
            name=data["name"],
            table_name=data.get("tableName", ""),
            fields=[Field.from_dict(f) for f in data.get("fields", [])],
            position=dict(data.get("position", {"x": 0, "y": 0})),
        )


@dataclass
class ForeignKeyConfig:
    column_name: str
    nullable: bool = True
    on_delete: str = FKAction.NO_ACTION.value
    on_update: str = FKAction.NO_ACTION.value

    def to_dict(self):
        return {
            "columnName": self.column_name,
            "nullable": self.nullable,
            "onDelete": self.on_delete,
            "onUpdate": self.on_update,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ForeignKeyConfig":
        return cls(
            column_name=data["columnName"],
            nullable=data.get("nullable", True),
            on_delete=data.get("onDelete", FKAction.NO_ACTION.value),
            on_update=data.get("onUpdate", FKAction.NO_ACTION.value),
        )


@dataclass
class Relation:
    id: str
    source_entity_id: str
    target_entity_id: str
    source_field_name: str
    foreign_key: ForeignKeyConfig
    type: str = RelationType.MANY_TO_ONE.value
    bidirectional: bool = False
    fetch_type: str = FetchType.LAZY.value
    cascade: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "sourceEntityId": self.source_entity_id,
            "sourceFieldName": self.source_field_name,
            "targetEntityId": self.target_entity_id,
            "bidirectional": self.bidirectional,
            "fetchType": self.fetch_type,
            "cascade": list(self.cascade),
            "foreignKey": self.foreign_key.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Relation":
        return cls(
            id=data["id"],
            type=data.get("type", RelationType.MANY_TO_ONE.value),
            source_entity_id=data["sourceEntityId"],
            target_entity_id=data["targetEntityId"],
            source_field_name=data.get("sourceFieldName", ""),
            foreign_key=ForeignKeyConfig.from_dict(data["foreignKey"]),
            bidirectional=data.get("bidirectional", False),
            fetch_type=data.get("fetchType", FetchType.LAZY.value),
            cascade=list(data.get("cascade", [])),
        )


@dataclass
class DataModel:
    """Result of one parse: the entities and the relations between them."""
    entities: List[Entity] = field(default_factory=list)
    relations: List[Relation] = field(default_factory=list)

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def get_entity_by_table(self, table_name: str) -> Optional[Entity]:
        lowered = table_name.lower()
        for entity in self.entities:
            if entity.table_name.lower() == lowered:
                return entity
        return None

    def to_dict(self):
        return {
            "entities": [e.to_dict() for e in self.entities],
            "relations": [r.to_dict() for r in self.relations],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "DataModel":
        if not isinstance(data, dict):
            raise ModelFormatError("Model document must be a JSON object")
        try:
            return cls(
                entities=[Entity.from_dict(e) for e in data.get("entities", [])],
                relations=[Relation.from_dict(r) for r in data.get("relations", [])],
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ModelFormatError(f"Invalid model document: {e}") from e
