"""Shared fixtures for the specmock test suite."""

import copy
import shutil

import pytest
import yaml

from specmock.mock.registry import SAMPLE_SPEC
from specmock.schema.parser import parse_specification


PETSTORE = {
    'openapi': '3.0.3',
    'info': {'title': 'Petstore', 'version': '1.0.0'},
    'paths': {
        '/pets': {
            'get': {
                'operationId': 'listPets',
                'responses': {
                    '200': {
                        'description': 'A list of pets',
                        'content': {
                            'application/json': {
                                'schema': {
                                    'type': 'array',
                                    'minItems': 2,
                                    'maxItems': 5,
                                    'items': {'$ref': '#/components/schemas/Pet'}
                                }
                            }
                        }
                    }
                }
            }
        },
        '/pets/{petId}': {
            'get': {
                'operationId': 'showPetById',
                'parameters': [
                    {'name': 'petId', 'in': 'path', 'required': True, 'schema': {'type': 'string'}}
                ],
                'responses': {
                    '200': {
                        'description': 'A pet',
                        'content': {
                            'application/json': {'schema': {'$ref': '#/components/schemas/Pet'}},
                            'application/xml': {'schema': {'$ref': '#/components/schemas/Pet'}}
                        }
                    },
                    '404': {
                        'description': 'Not found',
                        'content': {
                            'application/json': {'schema': {'$ref': '#/components/schemas/Error'}}
                        }
                    }
                }
            }
        },
        '/pets/mine': {
            'get': {
                'operationId': 'listMyPets',
                'responses': {
                    '200': {
                        'description': 'My pets',
                        'content': {
                            'application/json': {
                                'schema': {'type': 'array', 'items': {'$ref': '#/components/schemas/Pet'}}
                            }
                        }
                    }
                }
            }
        },
        '/orders': {
            'post': {
                'operationId': 'createOrder',
                'responses': {
                    '201': {
                        'description': 'Created',
                        'content': {
                            'application/json': {
                                'schema': {
                                    'type': 'object',
                                    'required': ['orderId'],
                                    'properties': {'orderId': {'type': 'integer', 'minimum': 1}}
                                }
                            }
                        }
                    }
                }
            }
        },
        '/pets/{petId}/photo': {
            'delete': {
                'operationId': 'deletePhoto',
                'responses': {'204': {'description': 'Deleted'}}
            }
        }
    },
    'components': {
        'schemas': {
            'Pet': {
                'type': 'object',
                'required': ['id', 'status'],
                'properties': {
                    'id': {'type': 'integer', 'minimum': 1, 'maximum': 1000},
                    'petId': {'type': 'string'},
                    'status': {'type': 'string', 'enum': ['available', 'pending', 'sold']},
                    'code': {'type': 'string', 'pattern': '^[A-Z]{2}-[0-9]{3}$'},
                    'tags': {'type': 'array', 'maxItems': 2, 'items': {'type': 'string', 'maxLength': 8}},
                    'category': {'$ref': '#/components/schemas/Category'}
                }
            },
            'Category': {
                'type': 'object',
                'required': ['id'],
                'properties': {
                    'id': {'type': 'integer'},
                    'parent': {'$ref': '#/components/schemas/Category'},
                    'children': {'type': 'array', 'items': {'$ref': '#/components/schemas/Category'}}
                }
            },
            'Error': {
                'type': 'object',
                'required': ['code', 'message'],
                'properties': {
                    'code': {'type': 'integer'},
                    'message': {'type': 'string'}
                }
            }
        }
    }
}


@pytest.fixture
def petstore_raw():
    """Raw Petstore contract mapping."""
    return copy.deepcopy(PETSTORE)


@pytest.fixture
def petstore_document(petstore_raw):
    """Parsed Petstore contract."""
    return parse_specification(petstore_raw, source='petstore.yaml')


@pytest.fixture
def specs_dir(tmp_path, petstore_raw):
    """Specs directory holding the test Petstore plus the bundled sample."""
    directory = tmp_path / 'specs'
    directory.mkdir()
    with open(directory / 'petstore.yaml', 'w') as f:
        yaml.safe_dump(petstore_raw, f, sort_keys=False)
    shutil.copyfile(SAMPLE_SPEC, directory / 'sample.yaml')
    return directory
