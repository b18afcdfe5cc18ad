"""
Specmock Mock Server Module

Mock HTTP server functionality for serving contract-generated responses.

This module provides:
- FastAPI-based mock server
- Route resolution against path templates
- Response status and media type selection
- Schema-driven value generation
"""

from .server import MockServer, MockMetrics, create_mock_server
from .engine import MockEngine, MockResponse, render_body
from .registry import SpecificationRegistry, RegistrySnapshot, LoadReport, ensure_specs_dir
from .matcher import RouteResolver, RouteTable, RouteMatch
from .selector import ResponseSelector, ResponseSelection, MediaRange, parse_accept
from .generator import ValueGenerator, GenerationContext
from .patterns import PatternSynthesizer, PatternError

__all__ = [
    # Server
    'MockServer',
    'MockMetrics',
    'create_mock_server',

    # Engine
    'MockEngine',
    'MockResponse',
    'render_body',

    # Registry
    'SpecificationRegistry',
    'RegistrySnapshot',
    'LoadReport',
    'ensure_specs_dir',

    # Matcher
    'RouteResolver',
    'RouteTable',
    'RouteMatch',

    # Selector
    'ResponseSelector',
    'ResponseSelection',
    'MediaRange',
    'parse_accept',

    # Generator
    'ValueGenerator',
    'GenerationContext',
    'PatternSynthesizer',
    'PatternError',
]
