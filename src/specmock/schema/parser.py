"""
Specmock Contract Parser

Turns a raw OpenAPI 3.x / Swagger 2.0 mapping (as loaded from YAML or JSON)
into a typed SpecificationDocument.

Schema references (``#/components/schemas/X``, ``#/definitions/X``) stay
lazy as ReferenceSchema nodes so self-referential models never become
back-pointers. Every other local reference (responses, parameters, request
bodies) is resolved eagerly here.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from ..common.errors import LoadError
from .model import (
    ArraySchema,
    COMPOSITE_KINDS,
    CompositeSchema,
    HTTP_METHODS,
    ObjectSchema,
    Operation,
    Parameter,
    PathItem,
    PRIMITIVE_TYPES,
    PrimitiveSchema,
    ReferenceSchema,
    ResponseDefinition,
    Schema,
    SpecificationDocument,
)


logger = logging.getLogger("specmock.parser")

SCHEMA_REF_PREFIXES = ('#/components/schemas/', '#/definitions/')

DEFAULT_MEDIA_TYPE = 'application/json'


def parse_specification(raw: Any, source: Optional[str] = None) -> SpecificationDocument:
    """
    Parse a raw contract mapping into a SpecificationDocument.

    Args:
        raw: Mapping produced by yaml.safe_load / json.load
        source: Optional file path, used in error messages

    Returns:
        Immutable SpecificationDocument

    Raises:
        LoadError: If the document is not a recognizable contract
    """
    return ContractParser(raw, source).parse()


class ContractParser:
    """Single-use parser for one contract document."""

    def __init__(self, raw: Any, source: Optional[str] = None):
        self.raw = raw
        self.source = source

    def parse(self) -> SpecificationDocument:
        try:
            return self._parse()
        except (AttributeError, TypeError, ValueError, KeyError) as e:
            # Wrong node shapes surface here, e.g. a list where a mapping belongs
            raise LoadError(f"Malformed contract structure: {e}", source=self.source) from e

    def _parse(self) -> SpecificationDocument:
        raw = self.raw
        if not isinstance(raw, dict):
            raise LoadError("Contract document must be a mapping", source=self.source)

        if 'openapi' in raw:
            self.swagger2 = False
        elif 'swagger' in raw:
            self.swagger2 = True
        else:
            raise LoadError(
                "Unrecognized contract: expected an 'openapi' or 'swagger' version key",
                source=self.source
            )

        info = raw.get('info') or {}
        if self.swagger2:
            raw_schemas = raw.get('definitions') or {}
            self.default_produces = raw.get('produces') or [DEFAULT_MEDIA_TYPE]
        else:
            raw_schemas = (raw.get('components') or {}).get('schemas') or {}
            self.default_produces = [DEFAULT_MEDIA_TYPE]

        schemas = {
            name: self.parse_schema(node, pointer=f"schema {name}")
            for name, node in raw_schemas.items()
        }

        raw_paths = raw.get('paths') or {}
        if not isinstance(raw_paths, dict):
            raise LoadError("'paths' must be a mapping", source=self.source)

        paths = tuple(
            self._parse_path_item(template, node or {})
            for template, node in raw_paths.items()
        )

        logger.debug(
            f"Parsed {'Swagger 2.0' if self.swagger2 else 'OpenAPI'} contract {self.source or '<memory>'}: "
            f"{len(paths)} paths, {len(schemas)} schemas"
        )

        return SpecificationDocument(
            title=str(info.get('title') or 'Untitled'),
            version=str(info.get('version') or 'Unknown'),
            paths=paths,
            schemas=schemas,
            description=info.get('description'),
            source=self.source
        )

    # Reference handling

    def _resolve_local(self, ref: str) -> Any:
        """Follow a local JSON pointer (``#/a/b``) inside the raw document."""
        if not ref.startswith('#/'):
            raise LoadError(f"External references are not supported: {ref}", source=self.source)

        node = self.raw
        for part in ref[2:].split('/'):
            part = part.replace('~1', '/').replace('~0', '~')
            if not isinstance(node, dict) or part not in node:
                raise LoadError(f"Unresolvable reference: {ref}", source=self.source)
            node = node[part]
        return node

    def _deref(self, node: Any, seen: Tuple[str, ...] = ()) -> Any:
        """Resolve non-schema $ref chains eagerly."""
        while isinstance(node, dict) and '$ref' in node:
            ref = node['$ref']
            if ref in seen:
                raise LoadError(f"Circular reference: {ref}", source=self.source)
            seen = seen + (ref,)
            node = self._resolve_local(ref)
        return node

    # Schemas

    def parse_schema(self, node: Any, pointer: str = '') -> Schema:
        """Interpret one raw schema node into the typed variant tree."""
        if node is True or node is None:
            return PrimitiveSchema()
        if not isinstance(node, dict):
            raise LoadError(f"Invalid schema at {pointer}: {node!r}", source=self.source)

        if '$ref' in node:
            ref = node['$ref']
            for prefix in SCHEMA_REF_PREFIXES:
                if ref.startswith(prefix):
                    return ReferenceSchema(ref=ref[len(prefix):], **self._common(node))
            return self.parse_schema(self._deref(node), pointer=ref)

        common = self._common(node)
        schema_type, nullable = self._schema_type(node)
        if nullable:
            common['nullable'] = True

        for kind in COMPOSITE_KINDS:
            if node.get(kind):
                children = tuple(
                    self.parse_schema(child, pointer=f"{pointer}/{kind}/{i}")
                    for i, child in enumerate(node[kind])
                )
                extra = None
                if node.get('properties'):
                    extra = self._parse_object(node, {}, pointer)
                return CompositeSchema(kind=kind, schemas=children, extra=extra, **common)

        if schema_type == 'array' or (schema_type is None and 'items' in node):
            items = node.get('items')
            return ArraySchema(
                items=self.parse_schema(items, pointer=f"{pointer}/items") if items is not None else None,
                min_items=node.get('minItems'),
                max_items=node.get('maxItems'),
                unique_items=bool(node.get('uniqueItems', False)),
                **common
            )

        if schema_type == 'object' or (
            schema_type is None and ('properties' in node or 'additionalProperties' in node)
        ):
            return self._parse_object(node, common, pointer)

        return self._parse_primitive(node, schema_type, common)

    def _common(self, node: Dict[str, Any]) -> Dict[str, Any]:
        common = {
            'nullable': bool(node.get('nullable', False) or node.get('x-nullable', False)),
            'title': node.get('title'),
            'description': node.get('description'),
            'default': node.get('default'),
        }
        if 'example' in node:
            common['example'] = node['example']
            common['has_example'] = True
        elif isinstance(node.get('examples'), list) and node['examples']:
            # JSON Schema style (OpenAPI 3.1) examples list
            common['example'] = node['examples'][0]
            common['has_example'] = True
        return common

    def _schema_type(self, node: Dict[str, Any]) -> Tuple[Optional[str], bool]:
        """Return (type, nullable) handling OpenAPI 3.1 type arrays."""
        schema_type = node.get('type')
        if isinstance(schema_type, list):
            types = [t for t in schema_type if t != 'null']
            nullable = len(types) != len(schema_type)
            return (types[0] if types else None), nullable
        return schema_type, False

    def _parse_object(self, node: Dict[str, Any], common: Dict[str, Any], pointer: str) -> ObjectSchema:
        properties = {
            name: self.parse_schema(child, pointer=f"{pointer}/properties/{name}")
            for name, child in (node.get('properties') or {}).items()
        }

        additional = node.get('additionalProperties')
        if isinstance(additional, dict):
            additional = self.parse_schema(additional, pointer=f"{pointer}/additionalProperties")
        elif additional is not True:
            additional = None

        return ObjectSchema(
            properties=properties,
            required=frozenset(node.get('required') or ()),
            additional_properties=additional,
            **common
        )

    def _parse_primitive(
        self,
        node: Dict[str, Any],
        schema_type: Optional[str],
        common: Dict[str, Any]
    ) -> PrimitiveSchema:
        enum = node.get('enum')
        if schema_type not in PRIMITIVE_TYPES:
            schema_type = _infer_type(enum) if enum else 'string'

        minimum = node.get('minimum')
        maximum = node.get('maximum')
        exclusive_min = node.get('exclusiveMinimum', False)
        exclusive_max = node.get('exclusiveMaximum', False)

        # OpenAPI 3.1 / JSON Schema: exclusive bounds are numbers
        if not isinstance(exclusive_min, bool) and isinstance(exclusive_min, (int, float)):
            minimum, exclusive_min = exclusive_min, True
        if not isinstance(exclusive_max, bool) and isinstance(exclusive_max, (int, float)):
            maximum, exclusive_max = exclusive_max, True

        return PrimitiveSchema(
            type=schema_type,
            format=node.get('format'),
            minimum=minimum,
            maximum=maximum,
            exclusive_minimum=bool(exclusive_min),
            exclusive_maximum=bool(exclusive_max),
            multiple_of=node.get('multipleOf'),
            min_length=node.get('minLength'),
            max_length=node.get('maxLength'),
            pattern=node.get('pattern'),
            enum=tuple(enum) if enum else None,
            **common
        )

    # Paths and operations

    def _parse_path_item(self, template: str, node: Dict[str, Any]) -> PathItem:
        node = self._deref(node)
        shared = [self._deref(p) for p in node.get('parameters') or []]

        operations: Dict[str, Operation] = {}
        for key, op_node in node.items():
            method = key.upper()
            if method not in HTTP_METHODS:
                continue
            operations[method] = self._parse_operation(template, method, op_node or {}, shared)

        return PathItem(
            template=template,
            operations=operations,
            summary=node.get('summary'),
            description=node.get('description')
        )

    def _parse_operation(
        self,
        template: str,
        method: str,
        node: Dict[str, Any],
        shared: List[Dict[str, Any]]
    ) -> Operation:
        merged: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for raw_param in shared + [self._deref(p) for p in node.get('parameters') or []]:
            merged[(raw_param.get('name'), raw_param.get('in'))] = raw_param

        parameters = []
        request_body = None
        for raw_param in merged.values():
            parameter = self._parse_parameter(raw_param)
            parameters.append(parameter)
            if parameter.location == 'body':
                request_body = parameter.schema

        if 'requestBody' in node:
            request_body = self._parse_request_body(node['requestBody'])

        produces = node.get('produces') or self.default_produces
        responses = {
            str(code): self._parse_response(response, produces)
            for code, response in (node.get('responses') or {}).items()
        }

        return Operation(
            method=method,
            path=template,
            responses=responses,
            parameters=tuple(parameters),
            request_body=request_body,
            operation_id=node.get('operationId'),
            summary=node.get('summary')
        )

    def _parse_parameter(self, node: Dict[str, Any]) -> Parameter:
        name = node.get('name')
        location = node.get('in')
        if not name or not location:
            raise LoadError(f"Parameter without name or location: {node!r}", source=self.source)

        schema = None
        if 'schema' in node:
            schema = self.parse_schema(node['schema'], pointer=f"parameter {name}")
        param_type = node.get('type')
        if param_type is None and isinstance(schema, PrimitiveSchema):
            param_type = schema.type

        return Parameter(
            name=name,
            location=location,
            type=param_type,
            required=bool(node.get('required', location == 'path')),
            schema=schema
        )

    def _parse_request_body(self, node: Any) -> Optional[Schema]:
        node = self._deref(node)
        content = node.get('content') or {}
        for media_type, media in content.items():
            if media and 'schema' in media:
                return self.parse_schema(media['schema'], pointer=f"requestBody {media_type}")
        return None

    def _parse_response(self, node: Any, produces: List[str]) -> ResponseDefinition:
        node = self._deref(node) or {}
        content: Dict[str, Optional[Schema]] = {}

        if self.swagger2:
            if 'schema' in node:
                schema = self.parse_schema(node['schema'], pointer='response')
                for media_type in produces:
                    content[media_type] = schema
        else:
            for media_type, media in (node.get('content') or {}).items():
                media = media or {}
                schema = None
                if 'schema' in media:
                    schema = self.parse_schema(media['schema'], pointer=f"response {media_type}")
                    example = _media_example(media)
                    if example is not _MISSING and not schema.has_example:
                        schema = _with_example(schema, example)
                content[media_type] = schema

        return ResponseDefinition(description=node.get('description') or '', content=content)


_MISSING = object()


def _media_example(media: Dict[str, Any]) -> Any:
    """Example declared on a media type object (``example`` or first ``examples`` value)."""
    if 'example' in media:
        return media['example']
    examples = media.get('examples')
    if isinstance(examples, dict):
        for entry in examples.values():
            if isinstance(entry, dict) and 'value' in entry:
                return entry['value']
    return _MISSING


def _with_example(schema: Schema, example: Any) -> Schema:
    return replace(schema, example=example, has_example=True)


def _infer_type(enum: List[Any]) -> str:
    values = [v for v in enum if v is not None]
    if values and all(isinstance(v, bool) for v in values):
        return 'boolean'
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return 'integer'
    if values and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in values):
        return 'number'
    return 'string'
