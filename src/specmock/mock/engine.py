"""
Specmock Engine

Transport-independent request pipeline:

    registry snapshot -> route resolver -> response selector -> value generator

The FastAPI server and the CLI ``generate`` command both drive this class;
it knows nothing about HTTP frameworks.
"""

import json
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Union

from ..common.config import GenerationConfig
from ..schema.model import (
    CompositeSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    Schema,
    SpecificationDocument,
)
from .generator import ValueGenerator
from .matcher import RouteMatch, RouteResolver
from .registry import SpecificationRegistry
from .selector import ResponseSelection, ResponseSelector, is_json, parse_accept


logger = logging.getLogger("specmock.engine")


@dataclass
class MockResponse:
    """Generated response plus the metadata that produced it."""

    status_code: int
    media_type: Optional[str]
    body: Any
    match: RouteMatch
    selection: ResponseSelection
    spec_name: str
    headers: Dict[str, str] = field(default_factory=dict)

    def render(self) -> str:
        return render_body(self.body, self.media_type, root=self._root_name())

    def _root_name(self) -> str:
        schema = self.selection.schema
        if schema is not None and schema.title:
            return schema.title
        if isinstance(schema, ReferenceSchema):
            return schema.ref
        return 'response'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status_code,
            'media_type': self.media_type,
            'body': self.body,
            'match': self.match.to_dict()
        }


class MockEngine:
    """
    Resolves a request and generates its mock response.

    Example:
        engine = MockEngine(registry)
        response = engine.handle('GET', '/pets/123', accept='application/json')
        print(response.status_code, response.render())
    """

    def __init__(
        self,
        registry: SpecificationRegistry,
        config: Optional[GenerationConfig] = None,
        resolver: Optional[RouteResolver] = None,
        selector: Optional[ResponseSelector] = None,
        echo_path_params: bool = True
    ):
        """
        Initialize engine.

        Args:
            registry: Loaded specification registry
            config: Generation knobs
            resolver: Optional RouteResolver (will create if None)
            selector: Optional ResponseSelector (will create if None)
            echo_path_params: Copy path parameter values into same-named body fields
        """
        self.registry = registry
        self.config = config or GenerationConfig()
        self.resolver = resolver or RouteResolver()
        self.selector = selector or ResponseSelector()
        self.echo_path_params = echo_path_params

    def handle(
        self,
        method: str,
        path: str,
        spec_name: Optional[str] = None,
        status: Optional[Union[str, int]] = None,
        accept: Optional[str] = None,
        seed: Optional[int] = None
    ) -> MockResponse:
        """
        Produce a mock response for one request.

        Args:
            method: HTTP method
            path: Request path
            spec_name: Registry name of the spec to use (default spec if None)
            status: Requested status override
            accept: Raw Accept header
            seed: Seed for reproducible generation

        Returns:
            MockResponse

        Raises:
            UnknownSpecification, RouteNotFound, MethodNotAllowed,
            NoResponseDefined, NotAcceptable
        """
        snapshot = self.registry.snapshot
        name = snapshot.resolve_name(spec_name)
        document = snapshot.specs[name]

        match = self.resolver.match(method, path, document, spec_name=name)
        selection = self.selector.select(match.operation, status, parse_accept(accept))

        body = None
        if selection.has_body:
            generator = ValueGenerator(document, self.config, seed=seed)
            body = generator.generate(selection.schema)
            if self.echo_path_params:
                body = echo_params(body, match.path_params, selection.schema, document)

        logger.debug(
            f"{method} {path} -> {match.operation.display_name} "
            f"[{selection.status_code} {selection.media_type}] via {name}"
        )

        headers = {
            'X-Specmock-Spec': name,
            'X-Specmock-Operation': match.operation.display_name,
            'X-Specmock-Path-Template': match.template
        }

        return MockResponse(
            status_code=selection.status_code,
            media_type=selection.media_type,
            body=body,
            match=match,
            selection=selection,
            spec_name=name,
            headers=headers
        )


def echo_params(
    body: Any,
    params: Dict[str, str],
    schema: Optional[Schema] = None,
    document: Optional[SpecificationDocument] = None
) -> Any:
    """
    Replace top-level body fields named like path parameters with the request values.

    A field is only replaced when its declared schema is a primitive the
    request value satisfies; enum, format and out-of-range fields keep their
    generated value.
    """
    if not isinstance(body, dict) or not params:
        return body

    properties = _property_schemas(schema, document)
    for key, raw in params.items():
        if key not in body or key not in properties:
            continue
        value = _coerce(raw, body[key])
        if value is None:
            continue
        if all(_accepts(prop, value) for prop in properties[key]):
            body[key] = value
    return body


_INTEGER = re.compile(r'-?[0-9]+')


def _coerce(raw: str, current: Any) -> Any:
    if isinstance(current, bool):
        return None
    if isinstance(current, int):
        return int(raw) if _INTEGER.fullmatch(raw) else None
    if isinstance(current, str):
        return raw
    return None


def _property_schemas(
    schema: Optional[Schema],
    document: Optional[SpecificationDocument],
    seen: FrozenSet[str] = frozenset()
) -> Dict[str, List[Schema]]:
    """Declared top-level properties of an object schema, following refs and allOf."""
    if isinstance(schema, ReferenceSchema):
        if document is None or schema.ref in seen:
            return {}
        return _property_schemas(document.schemas.get(schema.ref), document, seen | {schema.ref})

    collected: Dict[str, List[Schema]] = {}
    if isinstance(schema, ObjectSchema):
        for name, prop in schema.properties.items():
            collected.setdefault(name, []).append(_deref(prop, document))
    elif isinstance(schema, CompositeSchema) and schema.kind == 'allOf':
        branches = list(schema.schemas) + ([schema.extra] if schema.extra is not None else [])
        for branch in branches:
            for name, props in _property_schemas(branch, document, seen).items():
                collected.setdefault(name, []).extend(props)
    return collected


def _deref(schema: Optional[Schema], document: Optional[SpecificationDocument]) -> Optional[Schema]:
    seen = set()
    while isinstance(schema, ReferenceSchema) and document is not None and schema.ref not in seen:
        seen.add(schema.ref)
        schema = document.schemas.get(schema.ref)
    return schema


def _accepts(schema: Optional[Schema], value: Any) -> bool:
    """Whether a path value satisfies a primitive property schema."""
    if not isinstance(schema, PrimitiveSchema):
        return False
    if schema.enum is not None:
        return value in schema.enum

    if isinstance(value, str):
        if schema.type != 'string' or schema.format is not None:
            return False
        if schema.min_length is not None and len(value) < schema.min_length:
            return False
        if schema.max_length is not None and len(value) > schema.max_length:
            return False
        if schema.pattern is not None:
            try:
                return re.search(schema.pattern, value) is not None
            except re.error:
                return False
        return True

    if schema.type not in ('integer', 'number'):
        return False
    if schema.minimum is not None:
        if value < schema.minimum or (schema.exclusive_minimum and value == schema.minimum):
            return False
    if schema.maximum is not None:
        if value > schema.maximum or (schema.exclusive_maximum and value == schema.maximum):
            return False
    if schema.multiple_of:
        quotient = value / schema.multiple_of
        if abs(quotient - round(quotient)) > 1e-9:
            return False
    return True

    for key, raw in params.items():
        if key not in body:
            continue
        current = body[key]
        if isinstance(current, bool):
            continue
        if isinstance(current, int) and raw.lstrip('-').isdigit():
            body[key] = int(raw)
        elif isinstance(current, str):
            body[key] = raw
    return body


def render_body(value: Any, media_type: Optional[str], root: str = 'response') -> str:
    """
    Serialize a generated value for the negotiated media type.

    JSON for JSON types and unknown types, XML for ``*/xml`` types,
    plain text for ``text/*``.
    """
    if media_type is None:
        return ''

    base = media_type.split(';', 1)[0].strip().lower()
    if is_json(base):
        return json.dumps(value, default=str)
    if base.endswith('/xml') or base.endswith('+xml'):
        return to_xml(value, root)
    if base.startswith('text/'):
        return value if isinstance(value, str) else json.dumps(value, default=str)
    return json.dumps(value, default=str)


_XML_NAME = re.compile(r'[^A-Za-z0-9_.-]')


def _xml_tag(name: str) -> str:
    tag = _XML_NAME.sub('_', str(name)) or 'item'
    if not (tag[0].isalpha() or tag[0] == '_'):
        tag = '_' + tag
    return tag


def _to_element(tag: str, value: Any) -> ET.Element:
    element = ET.Element(_xml_tag(tag))
    if isinstance(value, dict):
        for key, child in value.items():
            element.append(_to_element(key, child))
    elif isinstance(value, list):
        for child in value:
            element.append(_to_element('item', child))
    elif isinstance(value, bool):
        element.text = 'true' if value else 'false'
    elif value is not None:
        element.text = str(value)
    return element


def to_xml(value: Any, root: str = 'response') -> str:
    return ET.tostring(_to_element(root, value), encoding='unicode')
