"""
Relations - belongs-to, has-one, has-many, many-to-many and polymorphic.
"""

from .base import Relation
from .belongs_to import BelongsTo
from .has_one import HasOne
from .has_many import HasMany
from .belongs_to_many import BelongsToMany
from .polymorphic import Polymorphic
from .pivot import Pivot, pivot_model
from .factory import make_relation

__all__ = [
    'Relation',
    'BelongsTo',
    'HasOne',
    'HasMany',
    'BelongsToMany',
    'Polymorphic',
    'Pivot',
    'pivot_model',
    'make_relation',
]
