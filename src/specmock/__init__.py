"""
Specmock

Mock API server that generates responses from OpenAPI / Swagger contracts.
"""

__version__ = '1.0.0'
