"""
Tests for Specmock Contract Parser

Tests OpenAPI 3.x and Swagger 2.0 interpretation into the typed schema tree.
"""

import pytest

from specmock.common.errors import LoadError
from specmock.schema.model import (
    ArraySchema,
    CompositeSchema,
    ObjectSchema,
    Operation,
    PathItem,
    PrimitiveSchema,
    ReferenceSchema,
    ResponseDefinition,
    SpecificationDocument,
)
from specmock.schema.parser import ContractParser, parse_specification


def openapi(paths=None, schemas=None, **extra):
    raw = {
        'openapi': '3.0.0',
        'info': {'title': 'Test API', 'version': '2.1'},
        'paths': paths or {},
        'components': {'schemas': schemas or {}}
    }
    raw.update(extra)
    return raw


def schema_of(raw_schema):
    """Parse a single schema node."""
    return ContractParser(openapi()).parse_schema(raw_schema)


class TestDocument:
    """Test document-level parsing."""

    def test_info(self, petstore_document):
        assert petstore_document.title == 'Petstore'
        assert petstore_document.version == '1.0.0'
        assert petstore_document.source == 'petstore.yaml'

    def test_paths_keep_declaration_order(self, petstore_document):
        templates = [item.template for item in petstore_document.paths]
        assert templates == ['/pets', '/pets/{petId}', '/pets/mine', '/orders', '/pets/{petId}/photo']

    def test_named_schemas(self, petstore_document):
        assert set(petstore_document.schemas) == {'Pet', 'Category', 'Error'}
        assert isinstance(petstore_document.get_schema('Pet'), ObjectSchema)

    def test_summary(self, petstore_document):
        assert petstore_document.summary() == {
            'title': 'Petstore',
            'version': '1.0.0',
            'pathCount': 5,
            'operationCount': 5
        }

    def test_not_a_mapping(self):
        with pytest.raises(LoadError):
            parse_specification(['not', 'a', 'contract'])

    def test_missing_version_key(self):
        with pytest.raises(LoadError) as exc_info:
            parse_specification({'info': {'title': 'x'}}, source='x.yaml')

        assert exc_info.value.source == 'x.yaml'

    def test_duplicate_operation_rejected(self):
        operation = Operation(method='GET', path='/a')
        with pytest.raises(LoadError):
            SpecificationDocument(
                title='t', version='1',
                paths=(PathItem('/a', {'GET': operation}), PathItem('/a', {'GET': operation}))
            )

    def test_identity_equality(self, petstore_raw):
        first = parse_specification(petstore_raw)
        second = parse_specification(petstore_raw)

        assert first != second
        assert first == first


class TestSchemas:
    """Test schema interpretation."""

    def test_primitive(self):
        schema = schema_of({'type': 'integer', 'minimum': 1, 'maximum': 9, 'multipleOf': 3})

        assert isinstance(schema, PrimitiveSchema)
        assert (schema.type, schema.minimum, schema.maximum, schema.multiple_of) == ('integer', 1, 9, 3)

    def test_string_constraints(self):
        schema = schema_of({'type': 'string', 'minLength': 2, 'maxLength': 5, 'pattern': '^a', 'format': 'email'})

        assert (schema.min_length, schema.max_length, schema.pattern, schema.format) == (2, 5, '^a', 'email')

    def test_enum_infers_type(self):
        assert schema_of({'enum': [1, 2]}).type == 'integer'
        assert schema_of({'enum': ['a']}).type == 'string'
        assert schema_of({'enum': [True, False]}).type == 'boolean'
        assert schema_of({'enum': [1, 2.5]}).type == 'number'

    def test_object(self):
        schema = schema_of({
            'type': 'object',
            'required': ['id'],
            'properties': {'id': {'type': 'integer'}, 'name': {'type': 'string'}}
        })

        assert isinstance(schema, ObjectSchema)
        assert schema.required == frozenset({'id'})
        assert set(schema.properties) == {'id', 'name'}
        assert schema.additional_properties is None

    def test_untyped_object(self):
        assert isinstance(schema_of({'properties': {'a': {}}}), ObjectSchema)

    def test_additional_properties(self):
        typed = schema_of({'type': 'object', 'additionalProperties': {'type': 'integer'}})
        free = schema_of({'type': 'object', 'additionalProperties': True})
        closed = schema_of({'type': 'object', 'additionalProperties': False})

        assert isinstance(typed.additional_properties, PrimitiveSchema)
        assert free.additional_properties is True
        assert closed.additional_properties is None

    def test_array(self):
        schema = schema_of({'type': 'array', 'items': {'type': 'string'}, 'minItems': 1, 'maxItems': 4, 'uniqueItems': True})

        assert isinstance(schema, ArraySchema)
        assert isinstance(schema.items, PrimitiveSchema)
        assert (schema.min_items, schema.max_items, schema.unique_items) == (1, 4, True)

    def test_reference_stays_lazy(self, petstore_document):
        category = petstore_document.get_schema('Category')
        parent = category.properties['parent']

        assert isinstance(parent, ReferenceSchema)
        assert parent.ref == 'Category'

    def test_composites(self):
        schema = schema_of({
            'oneOf': [{'type': 'string'}, {'type': 'integer'}],
            'properties': {'kind': {'type': 'string'}}
        })

        assert isinstance(schema, CompositeSchema)
        assert schema.kind == 'oneOf'
        assert len(schema.schemas) == 2
        assert set(schema.extra.properties) == {'kind'}

    def test_all_of(self):
        schema = schema_of({'allOf': [{'$ref': '#/components/schemas/Base'}, {'type': 'object'}]})

        assert schema.kind == 'allOf'
        assert isinstance(schema.schemas[0], ReferenceSchema)
        assert schema.extra is None

    def test_example(self):
        schema = schema_of({'type': 'string', 'example': 'doggie'})
        assert schema.has_example and schema.example == 'doggie'

    def test_falsy_example(self):
        schema = schema_of({'type': 'integer', 'example': 0})
        assert schema.has_example and schema.example == 0

    def test_examples_list(self):
        schema = schema_of({'type': 'string', 'examples': ['first', 'second']})
        assert schema.example == 'first'

    def test_nullable(self):
        assert schema_of({'type': 'string', 'nullable': True}).nullable
        assert schema_of({'type': 'string', 'x-nullable': True}).nullable

    def test_type_array_with_null(self):
        schema = schema_of({'type': ['integer', 'null']})

        assert schema.type == 'integer'
        assert schema.nullable

    def test_boolean_exclusive_bounds(self):
        schema = schema_of({'type': 'number', 'minimum': 0, 'exclusiveMinimum': True})

        assert schema.minimum == 0
        assert schema.exclusive_minimum

    def test_numeric_exclusive_bounds(self):
        schema = schema_of({'type': 'number', 'exclusiveMinimum': 1, 'exclusiveMaximum': 5})

        assert (schema.minimum, schema.maximum) == (1, 5)
        assert schema.exclusive_minimum and schema.exclusive_maximum

    def test_invalid_schema(self):
        with pytest.raises(LoadError):
            schema_of('not a schema')


class TestOperations:
    """Test operation and response parsing."""

    def test_operation_fields(self, petstore_document):
        operation = petstore_document.paths[1].operations['GET']

        assert operation.operation_id == 'showPetById'
        assert operation.display_name == 'showPetById'
        assert [p.name for p in operation.path_parameters()] == ['petId']
        assert set(operation.responses) == {'200', '404'}
        assert operation.responses['200'].media_types == ['application/json', 'application/xml']

    def test_display_name_without_id(self):
        document = parse_specification(openapi({'/x': {'get': {'responses': {'200': {'description': 'ok'}}}}}))
        assert document.paths[0].operations['GET'].display_name == 'GET /x'

    def test_response_without_content(self, petstore_document):
        response = petstore_document.paths[4].operations['DELETE'].responses['204']

        assert response.content == {}
        assert response.media_types == []

    def test_path_level_parameters_merge(self):
        raw = openapi({
            '/items/{id}': {
                'parameters': [{'name': 'id', 'in': 'path', 'schema': {'type': 'string'}}],
                'get': {
                    'parameters': [
                        {'name': 'id', 'in': 'path', 'schema': {'type': 'integer'}},
                        {'name': 'q', 'in': 'query', 'schema': {'type': 'string'}}
                    ],
                    'responses': {'200': {'description': 'ok'}}
                }
            }
        })
        operation = parse_specification(raw).paths[0].operations['GET']
        params = {p.name: p for p in operation.parameters}

        assert params['id'].type == 'integer'
        assert params['id'].required
        assert not params['q'].required

    def test_referenced_components(self):
        raw = openapi(
            {
                '/things': {
                    'get': {
                        'parameters': [{'$ref': '#/components/parameters/Limit'}],
                        'responses': {'200': {'$ref': '#/components/responses/Things'}}
                    },
                    'post': {
                        'requestBody': {'$ref': '#/components/requestBodies/Thing'},
                        'responses': {'201': {'description': 'created'}}
                    }
                }
            },
            {'Thing': {'type': 'object', 'properties': {'id': {'type': 'integer'}}}}
        )
        raw['components'].update({
            'parameters': {'Limit': {'name': 'limit', 'in': 'query', 'schema': {'type': 'integer'}}},
            'responses': {'Things': {
                'description': 'things',
                'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Thing'}}}
            }},
            'requestBodies': {'Thing': {
                'content': {'application/json': {'schema': {'$ref': '#/components/schemas/Thing'}}}
            }}
        })
        item = parse_specification(raw).paths[0]

        assert item.operations['GET'].parameters[0].name == 'limit'
        assert item.operations['GET'].responses['200'].description == 'things'
        assert item.operations['POST'].request_body.ref == 'Thing'

    def test_media_type_example(self):
        raw = openapi({
            '/hello': {
                'get': {
                    'responses': {
                        '200': {
                            'description': 'ok',
                            'content': {
                                'application/json': {
                                    'schema': {'type': 'object'},
                                    'examples': {'greeting': {'value': {'hello': 'world'}}}
                                }
                            }
                        }
                    }
                }
            }
        })
        response = parse_specification(raw).paths[0].operations['GET'].responses['200']
        schema = response.content['application/json']

        assert schema.has_example
        assert schema.example == {'hello': 'world'}

    def test_unresolvable_reference(self):
        raw = openapi({'/x': {'get': {'responses': {'200': {'$ref': '#/components/responses/Nope'}}}}})

        with pytest.raises(LoadError):
            parse_specification(raw)

    def test_external_reference(self):
        raw = openapi({'/x': {'get': {'responses': {'200': {'$ref': 'other.yaml#/Foo'}}}}})

        with pytest.raises(LoadError):
            parse_specification(raw)


class TestSwagger2:
    """Test Swagger 2.0 documents."""

    @pytest.fixture
    def swagger(self):
        return parse_specification({
            'swagger': '2.0',
            'info': {'title': 'Legacy', 'version': '0.9'},
            'produces': ['application/json', 'application/xml'],
            'paths': {
                '/users/{id}': {
                    'get': {
                        'parameters': [{'name': 'id', 'in': 'path', 'type': 'integer', 'required': True}],
                        'responses': {'200': {'description': 'ok', 'schema': {'$ref': '#/definitions/User'}}}
                    },
                    'put': {
                        'produces': ['text/plain'],
                        'parameters': [{'name': 'body', 'in': 'body', 'schema': {'$ref': '#/definitions/User'}}],
                        'responses': {'200': {'description': 'ok', 'schema': {'type': 'string'}}}
                    }
                }
            },
            'definitions': {
                'User': {'type': 'object', 'properties': {'id': {'type': 'integer'}}}
            }
        })

    def test_definitions(self, swagger):
        assert set(swagger.schemas) == {'User'}

    def test_produces(self, swagger):
        operations = swagger.paths[0].operations

        assert operations['GET'].responses['200'].media_types == ['application/json', 'application/xml']
        assert operations['PUT'].responses['200'].media_types == ['text/plain']

    def test_reference_prefix(self, swagger):
        schema = swagger.paths[0].operations['GET'].responses['200'].content['application/json']

        assert isinstance(schema, ReferenceSchema)
        assert schema.ref == 'User'

    def test_body_parameter(self, swagger):
        operation = swagger.paths[0].operations['PUT']

        assert operation.request_body.ref == 'User'
        assert operation.parameters[0].location == 'body'

    def test_parameter_type(self, swagger):
        assert swagger.paths[0].operations['GET'].parameters[0].type == 'integer'
