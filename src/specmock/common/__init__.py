"""
Specmock Common Utilities

Configuration, error types and contract file loading shared across modules.
"""

from .config import MockConfig, GenerationConfig
from .errors import (
    SpecmockError,
    LoadError,
    UnknownSpecification,
    RouteError,
    RouteNotFound,
    MethodNotAllowed,
    SelectionError,
    NoResponseDefined,
    NotAcceptable
)
from .utils import SpecLoader, discover_spec_files, SPEC_EXTENSIONS

__all__ = [
    'MockConfig',
    'GenerationConfig',
    'SpecmockError',
    'LoadError',
    'UnknownSpecification',
    'RouteError',
    'RouteNotFound',
    'MethodNotAllowed',
    'SelectionError',
    'NoResponseDefined',
    'NotAcceptable',
    'SpecLoader',
    'discover_spec_files',
    'SPEC_EXTENSIONS'
]
