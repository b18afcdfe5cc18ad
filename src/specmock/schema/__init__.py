"""
Specmock Schema Module

Typed contract model and the OpenAPI / Swagger parser that builds it.
"""

from .model import (
    Schema,
    PrimitiveSchema,
    ObjectSchema,
    ArraySchema,
    ReferenceSchema,
    CompositeSchema,
    Parameter,
    ResponseDefinition,
    Operation,
    PathItem,
    SpecificationDocument
)
from .parser import ContractParser, parse_specification

__all__ = [
    # Model
    'Schema',
    'PrimitiveSchema',
    'ObjectSchema',
    'ArraySchema',
    'ReferenceSchema',
    'CompositeSchema',
    'Parameter',
    'ResponseDefinition',
    'Operation',
    'PathItem',
    'SpecificationDocument',

    # Parser
    'ContractParser',
    'parse_specification',
]
