"""
Specmock Route Resolver

Maps an incoming (method, path) onto a contract operation and extracts
path parameters.

Features:
- Route tables compiled once per loaded document and cached by identity
- Literal, parameter (``{id}``) and mixed (``{name}.json``) segments
- Specificity tie-break: most literal segments wins, then registration order
- 404 / 405 distinction with the set of allowed methods
"""

import re
import threading
import weakref
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..common.errors import MethodNotAllowed, RouteNotFound
from ..schema.model import Operation, PathItem, SpecificationDocument


PARAM_PATTERN = re.compile(r'\{([^{}/]+)\}')


@dataclass(frozen=True)
class Segment:
    """One compiled path template segment."""

    text: str
    literal: bool
    names: Tuple[str, ...] = ()
    regex: Optional['re.Pattern'] = None

    def match(self, value: str) -> Optional[Dict[str, str]]:
        """Return bound parameters if the request segment matches, else None."""
        if self.literal:
            return {} if value == self.text else None
        if not value:
            return None
        if self.regex is None:
            return {self.names[0]: value}
        found = self.regex.fullmatch(value)
        if found is None:
            return None
        return dict(zip(self.names, found.groups()))


@dataclass(frozen=True)
class CompiledRoute:
    """Path template decomposed into segments, with its registration order."""

    template: str
    segments: Tuple[Segment, ...]
    order: int
    path_item: PathItem

    @property
    def literal_count(self) -> int:
        return sum(1 for s in self.segments if s.literal)

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (-self.literal_count, self.order)

    def match(self, parts: List[str]) -> Optional[Dict[str, str]]:
        if len(parts) != len(self.segments):
            return None
        params: Dict[str, str] = {}
        for segment, part in zip(self.segments, parts):
            bound = segment.match(part)
            if bound is None:
                return None
            params.update(bound)
        return params


@dataclass
class RouteMatch:
    """Result of resolving a request to an operation."""

    operation: Operation
    path_item: PathItem
    path_params: Dict[str, str] = field(default_factory=dict)
    spec_name: Optional[str] = None

    @property
    def template(self) -> str:
        return self.path_item.template

    def to_dict(self):
        return {
            'method': self.operation.method,
            'template': self.template,
            'operation': self.operation.display_name,
            'path_params': dict(self.path_params),
            'spec': self.spec_name
        }


def split_path(path: str) -> List[str]:
    """Split a request path into segments, ignoring the query string and a trailing slash."""
    path = path.split('?', 1)[0].split('#', 1)[0]
    if path.endswith('/') and path != '/':
        path = path.rstrip('/')
    parts = path.split('/')
    if parts and parts[0] == '':
        parts = parts[1:]
    if parts == ['']:
        return []
    return parts


def compile_segment(text: str) -> Segment:
    names = tuple(PARAM_PATTERN.findall(text))
    if not names:
        return Segment(text=text, literal=True)
    if text == '{' + names[0] + '}':
        return Segment(text=text, literal=False, names=names)

    pieces = []
    last = 0
    for found in PARAM_PATTERN.finditer(text):
        pieces.append(re.escape(text[last:found.start()]))
        pieces.append('(.+?)')
        last = found.end()
    pieces.append(re.escape(text[last:]))
    return Segment(text=text, literal=False, names=names, regex=re.compile(''.join(pieces)))


class RouteTable:
    """
    Compiled lookup structure for one specification document.

    Routes are grouped by method; each group keeps the templates in
    specificity order so the first structural match wins. The table keeps
    no reference to the document itself.
    """

    def __init__(self, document: SpecificationDocument):
        self.routes: List[CompiledRoute] = [
            CompiledRoute(
                template=item.template,
                segments=tuple(compile_segment(s) for s in split_path(item.template)),
                order=order,
                path_item=item
            )
            for order, item in enumerate(document.paths)
        ]
        self.by_method: Dict[str, List[CompiledRoute]] = {}
        for route in self.routes:
            for method in route.path_item.operations:
                self.by_method.setdefault(method, []).append(route)
        for routes in self.by_method.values():
            routes.sort(key=lambda r: r.sort_key)

    def match(self, method: str, path: str, spec_name: Optional[str] = None) -> RouteMatch:
        """
        Resolve a request against this table.

        Raises:
            RouteNotFound: If no template matches the path
            MethodNotAllowed: If templates match the path but not the method
        """
        method = method.upper()
        parts = split_path(path)

        for route in self.by_method.get(method, []):
            params = route.match(parts)
            if params is not None:
                return RouteMatch(
                    operation=route.path_item.operations[method],
                    path_item=route.path_item,
                    path_params=params,
                    spec_name=spec_name
                )

        allowed = set()
        for route in self.routes:
            if route.match(parts) is not None:
                allowed.update(route.path_item.operations)

        if allowed:
            raise MethodNotAllowed(method, path, allowed)
        raise RouteNotFound(method, path)


class RouteResolver:
    """
    Resolves requests to operations, building route tables lazily.

    Tables are cached per document object; once a reload replaces a document
    and nothing references the old one, its table is dropped with it.

    Example:
        resolver = RouteResolver()
        match = resolver.match('GET', '/pets/123', document)
        print(match.path_params)  # {'petId': '123'}
    """

    def __init__(self):
        self._tables: 'weakref.WeakKeyDictionary[SpecificationDocument, RouteTable]' = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def table_for(self, document: SpecificationDocument) -> RouteTable:
        table = self._tables.get(document)
        if table is None:
            with self._lock:
                table = self._tables.get(document)
                if table is None:
                    table = RouteTable(document)
                    self._tables[document] = table
        return table

    def match(
        self,
        method: str,
        path: str,
        document: SpecificationDocument,
        spec_name: Optional[str] = None
    ) -> RouteMatch:
        """
        Resolve (method, path) against a document.

        Args:
            method: HTTP method (case-insensitive)
            path: Request path, optionally with query string
            document: Loaded specification document
            spec_name: Registry name of the document, recorded on the match

        Returns:
            RouteMatch with operation and extracted path parameters

        Raises:
            RouteNotFound: No template matches the path
            MethodNotAllowed: A template matches but not for this method
        """
        return self.table_for(document).match(method, path, spec_name=spec_name)
