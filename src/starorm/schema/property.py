"""
Property Definitions - Immutable Field Metadata

🏷️ Schema Building Blocks:
A ``Property`` describes one field of a model: its semantic type, how it may
be written over the model's lifetime, how it is validated, and whether it is
a relation to another model type. Properties are frozen pydantic models so a
definition can be shared by every instance of a type without being altered.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .types import PropertyType, cast


class Mutability(str, Enum):
    """When a property may be written"""
    IMMUTABLE = "immutable"
    MUTABLE_CREATE_ONLY = "mutable_create_only"
    MUTABLE = "mutable"


class RelationKind(str, Enum):
    """Supported relationship variants"""
    BELONGS_TO = "belongs_to"
    HAS_ONE = "has_one"
    HAS_MANY = "has_many"
    BELONGS_TO_MANY = "belongs_to_many"
    POLYMORPHIC = "polymorphic"


RuleChain = Union[str, List[Any], Callable[..., Any], None]


class Property(BaseModel):
    """
    Immutable metadata for a single model property.

    ``has_default`` distinguishes "no default" from a default of ``None``; it
    is set automatically when ``default`` is supplied.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra='forbid')

    name: str
    type: Optional[PropertyType] = None
    mutable: Mutability = Mutability.MUTABLE
    null: bool = False
    required: bool = False
    unique: bool = False
    default: Any = None
    has_default: bool = False
    rules: RuleChain = None
    persisted: bool = True
    in_array: bool = True
    encrypted: bool = False
    title: Optional[str] = None
    date_format: Optional[str] = None
    enum_class: Optional[Type[Enum]] = None

    # relationship metadata
    relation: Any = None
    relation_type: Optional[RelationKind] = None
    local_key: Optional[str] = None
    foreign_key: Optional[str] = None
    pivot_tablename: Optional[str] = None
    morphs_to: Optional[Dict[str, Any]] = Field(default=None)

    @model_validator(mode='before')
    @classmethod
    def _flag_default(cls, data: Any) -> Any:
        if isinstance(data, dict) and 'default' in data and 'has_default' not in data:
            data = dict(data)
            data['has_default'] = True
        return data

    @property
    def is_relation(self) -> bool:
        return self.relation_type is not None

    def get_title(self) -> str:
        """Human readable name, e.g. ``first_name`` -> ``First name``"""
        if self.title:
            return self.title
        return self.name.replace('_', ' ').strip().capitalize()

    def cast(self, value: Any) -> Any:
        return cast(self.type, value, nullable=self.null,
                    date_format=self.date_format, enum_class=self.enum_class)

    def with_changes(self, **changes: Any) -> 'Property':
        """Return a copy with ``changes`` applied"""
        if 'default' in changes:
            changes.setdefault('has_default', True)
        return self.model_copy(update=changes)


__all__ = ['Property', 'Mutability', 'RelationKind', 'RuleChain']
