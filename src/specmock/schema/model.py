"""
Specmock Schema Model

Typed, immutable in-memory representation of an API contract.

The contract parser resolves the loosely-typed document tree into these
classes once at load time, so the generator and router switch over a closed
set of cases instead of probing nested dicts:

- Schema variants: PrimitiveSchema, ObjectSchema, ArraySchema,
  ReferenceSchema, CompositeSchema
- Contract structure: SpecificationDocument > PathItem > Operation >
  ResponseDefinition
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from ..common.errors import LoadError


HTTP_METHODS = ('GET', 'PUT', 'POST', 'DELETE', 'OPTIONS', 'HEAD', 'PATCH', 'TRACE')

PRIMITIVE_TYPES = ('string', 'number', 'integer', 'boolean')

COMPOSITE_KINDS = ('allOf', 'oneOf', 'anyOf')


@dataclass(frozen=True)
class Schema:
    """Base class for all schema variants."""

    example: Any = None
    has_example: bool = False
    default: Any = None
    nullable: bool = False
    title: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class PrimitiveSchema(Schema):
    """String, number, integer or boolean with its constraints."""

    type: str = 'string'
    format: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False
    multiple_of: Optional[float] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    enum: Optional[Tuple[Any, ...]] = None


@dataclass(frozen=True)
class ObjectSchema(Schema):
    """Named properties plus the set of required ones."""

    properties: Dict[str, Schema] = field(default_factory=dict)
    required: FrozenSet[str] = frozenset()
    # A Schema, True for "any value", or None when not allowed/declared
    additional_properties: Union[Schema, bool, None] = None


@dataclass(frozen=True)
class ArraySchema(Schema):
    """Homogeneous array."""

    items: Optional[Schema] = None
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False


@dataclass(frozen=True)
class ReferenceSchema(Schema):
    """Pointer to a named schema, resolved lazily through the document."""

    ref: str = ''


@dataclass(frozen=True)
class CompositeSchema(Schema):
    """allOf / oneOf / anyOf composition.

    ``extra`` holds object properties declared next to the keyword; it is
    treated as one more allOf branch.
    """

    kind: str = 'allOf'
    schemas: Tuple[Schema, ...] = ()
    extra: Optional[ObjectSchema] = None


@dataclass(frozen=True)
class Parameter:
    """Declared operation parameter."""

    name: str
    location: str
    type: Optional[str] = None
    required: bool = False
    schema: Optional[Schema] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'in': self.location,
            'type': self.type,
            'required': self.required
        }


@dataclass(frozen=True)
class ResponseDefinition:
    """Declared response for one status code.

    ``content`` maps media type to schema; a representation may carry no
    schema, in which case the value is None.
    """

    description: str = ''
    content: Dict[str, Optional[Schema]] = field(default_factory=dict)

    @property
    def media_types(self) -> List[str]:
        return list(self.content.keys())


@dataclass(frozen=True)
class Operation:
    """One HTTP method on one path template."""

    method: str
    path: str
    responses: Dict[str, ResponseDefinition] = field(default_factory=dict)
    parameters: Tuple[Parameter, ...] = ()
    request_body: Optional[Schema] = None
    operation_id: Optional[str] = None
    summary: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.operation_id or f"{self.method} {self.path}"

    def path_parameters(self) -> List[Parameter]:
        return [p for p in self.parameters if p.location == 'path']


@dataclass(frozen=True)
class PathItem:
    """Path template plus its operations keyed by upper-case method."""

    template: str
    operations: Dict[str, Operation] = field(default_factory=dict)
    summary: Optional[str] = None
    description: Optional[str] = None

    @property
    def methods(self) -> List[str]:
        return list(self.operations.keys())


@dataclass(frozen=True, eq=False)
class SpecificationDocument:
    """
    Parsed, immutable API contract.

    Compared and hashed by identity: a reload produces a new document rather
    than mutating this one, and caches keyed on a document stay valid for its
    whole lifetime.
    """

    title: str
    version: str
    paths: Tuple[PathItem, ...] = ()
    schemas: Dict[str, Schema] = field(default_factory=dict)
    description: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self):
        seen = set()
        for path_item in self.paths:
            for method in path_item.operations:
                key = (path_item.template, method)
                if key in seen:
                    raise LoadError(
                        f"Duplicate operation {method} {path_item.template}",
                        source=self.source
                    )
                seen.add(key)

    def get_schema(self, name: str) -> Optional[Schema]:
        return self.schemas.get(name)

    def operations(self) -> List[Operation]:
        """All operations in registration order."""
        return [op for item in self.paths for op in item.operations.values()]

    def endpoints(self) -> List[Dict[str, Any]]:
        """Endpoint inventory for the management surface."""
        return [
            {
                'path': item.template,
                'methods': item.methods,
                'summary': item.summary,
                'description': item.description
            }
            for item in self.paths
        ]

    def summary(self) -> Dict[str, Any]:
        return {
            'title': self.title,
            'version': self.version,
            'pathCount': len(self.paths),
            'operationCount': len(self.operations())
        }
