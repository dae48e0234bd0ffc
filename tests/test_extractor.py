"""
Тесты извлечения промежуточного представления
"""

import pytest

from openapi_libgen.errors import ExtractionError
from openapi_libgen.internal.parser.extractor import extract_spec, pick_media_type
from openapi_libgen.internal.parser.normalizer import upgrade
from openapi_libgen.internal.types.document import OpenApiV30Document
from openapi_libgen.internal.types.ir import (
    AliasSchema,
    EnumSchema,
    ParameterLocation,
    RecordSchema,
    TypeKind,
)


def extract(paths=None, schemas=None, **extra):
    content = {
        "openapi": "3.0.0",
        "info": {"title": "Users API", "version": "2.0.0", "description": "Пользователи"},
        "paths": paths or {},
        "components": {"schemas": schemas or {}},
    }
    content.update(extra)
    return extract_spec(upgrade(OpenApiV30Document(content=content)))


USER_SCHEMAS = {
    "User": {
        "type": "object",
        "description": "Пользователь",
        "required": ["id", "username"],
        "properties": {
            "id": {"type": "integer"},
            "username": {"type": "string"},
            "created_at": {"type": "string", "format": "date-time"},
            "status": {"type": "string", "enum": ["active", "blocked"]},
            "tags": {"type": "array", "items": {"type": "string"}},
            "manager": {"$ref": "#/components/schemas/User"},
        },
    },
    "Users": {"type": "array", "items": {"$ref": "#/components/schemas/User"}},
    "Role": {"type": "string", "enum": ["admin", "member"]},
}


class TestSchemas:
    """Тесты извлечения схем"""

    def test_record(self):
        """Тест объектной схемы"""
        spec = extract(schemas=USER_SCHEMAS)
        user = spec.schemas["User"]

        assert isinstance(user, RecordSchema)
        assert user.description == "Пользователь"
        fields = {field.name: field for field in user.fields}
        assert list(fields) == ["id", "username", "created_at", "status", "tags", "manager"]
        assert fields["id"].type.kind == TypeKind.INTEGER
        assert fields["id"].required
        assert not fields["created_at"].required
        assert fields["created_at"].type.kind == TypeKind.DATETIME
        assert fields["tags"].type.kind == TypeKind.ARRAY
        assert fields["tags"].type.item.kind == TypeKind.STRING

    def test_self_reference(self):
        """Тест ссылки модели на саму себя"""
        spec = extract(schemas=USER_SCHEMAS)
        manager = spec.schemas["User"].fields[-1]

        assert manager.type.kind == TypeKind.MODEL
        assert manager.type.model == "User"

    def test_inline_enum_hoisted(self):
        """Тест выноса inline enum в отдельную схему"""
        spec = extract(schemas=USER_SCHEMAS)

        status = spec.schemas["UserStatus"]
        assert isinstance(status, EnumSchema)
        assert status.values == ["active", "blocked"]
        assert spec.schemas["User"].fields[3].type.model == "UserStatus"

    def test_component_enum_and_alias(self):
        """Тест enum и алиаса на уровне компонентов"""
        spec = extract(schemas=USER_SCHEMAS)

        assert isinstance(spec.schemas["Role"], EnumSchema)
        users = spec.schemas["Users"]
        assert isinstance(users, AliasSchema)
        assert users.type.kind == TypeKind.ARRAY
        assert users.type.item.model == "User"

    def test_all_of_merges_fields(self):
        """Тест объединения полей allOf"""
        schemas = {
            "Pet": {
                "type": "object",
                "required": ["name"],
                "properties": {"name": {"type": "string"}},
            },
            "Dog": {
                "allOf": [
                    {"$ref": "#/components/schemas/Pet"},
                    {
                        "type": "object",
                        "required": ["bark"],
                        "properties": {"bark": {"type": "boolean"}},
                    },
                ]
            },
        }
        dog = extract(schemas=schemas).schemas["Dog"]

        assert isinstance(dog, RecordSchema)
        assert [(f.name, f.required) for f in dog.fields] == [
            ("name", True),
            ("bark", True),
        ]

    def test_nullable_and_map(self):
        """Тест nullable и additionalProperties"""
        schemas = {
            "Settings": {
                "type": "object",
                "properties": {
                    "note": {"type": "string", "nullable": True},
                    "limits": {
                        "type": "object",
                        "additionalProperties": {"type": "integer"},
                    },
                },
            }
        }
        note, limits = extract(schemas=schemas).schemas["Settings"].fields

        assert note.type.nullable
        assert limits.type.kind == TypeKind.MAP
        assert limits.type.item.kind == TypeKind.INTEGER

    def test_unique_model_names(self):
        """Тест: одинаковые после PascalCase имена не конфликтуют"""
        schemas = {"pet_item": {"type": "string"}, "PetItem": {"type": "integer"}}
        spec = extract(schemas=schemas)

        assert list(spec.schemas) == ["PetItem", "PetItem2"]

    def test_reference_into_own_interior(self):
        """Тест: ссылка внутрь схемы на саму себя не зацикливает извлечение"""
        schemas = {
            "Tree": {
                "type": "object",
                "properties": {
                    "children": {
                        "type": "array",
                        "items": {"$ref": "#/components/schemas/Tree/properties/children"},
                    }
                },
            }
        }
        children = extract(schemas=schemas).schemas["Tree"].fields[0]

        assert children.type.kind == TypeKind.ARRAY
        assert children.type.item.kind == TypeKind.ANY

    def test_list_valued_type_and_format(self):
        """Тест списка типов и формата неожиданного типа в документе 3.0"""
        schemas = {
            "Note": {
                "type": "object",
                "properties": {
                    "text": {"type": ["string", "null"], "format": ["date"]},
                    "count": {"type": ["integer", "string"]},
                    "size": {"type": {"bad": 1}},
                },
            }
        }
        text, count, size = extract(schemas=schemas).schemas["Note"].fields

        assert text.type.kind == TypeKind.STRING
        assert text.type.nullable
        assert count.type.kind == TypeKind.ANY
        assert size.type.kind == TypeKind.ANY

    def test_unknown_reference(self):
        """Тест ссылки на отсутствующую схему"""
        schemas = {
            "Pet": {
                "type": "object",
                "properties": {"owner": {"$ref": "#/components/schemas/Missing"}},
            }
        }
        with pytest.raises(ExtractionError) as exc_info:
            extract(schemas=schemas)

        assert exc_info.value.stage == "extract"


class TestOperations:
    """Тесты извлечения операций"""

    def test_names(self):
        """Тест имен операций из operationId и из пути"""
        paths = {
            "/users": {
                "get": {"operationId": "listUsers", "responses": {}},
                "post": {"operationId": "listUsers", "responses": {}},
            },
            "/users/{id}/posts": {"get": {"responses": {}}},
        }
        spec = extract(paths=paths)

        assert [op.name for op in spec.operations] == [
            "list_users",
            "list_users_2",
            "get_users_by_id_posts",
        ]
        assert spec.operations[0].method == "GET"

    def test_inline_body_and_response(self):
        """Тест выноса inline тела запроса и ответа"""
        paths = {
            "/users": {
                "post": {
                    "operationId": "createUser",
                    "requestBody": {
                        "required": True,
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "properties": {
                                        "name": {"type": "string"},
                                        "address": {
                                            "type": "object",
                                            "properties": {"city": {"type": "string"}},
                                        },
                                    },
                                }
                            }
                        },
                    },
                    "responses": {
                        "201": {
                            "description": "created",
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "object",
                                        "properties": {"id": {"type": "integer"}},
                                    }
                                }
                            },
                        }
                    },
                }
            }
        }
        spec = extract(paths=paths)
        operation = spec.operations[0]

        assert operation.body.required
        assert operation.body.media_type == "application/json"
        assert operation.body.type.model == "CreateUserRequest"
        assert operation.response.model == "CreateUserResponse"
        assert isinstance(spec.schemas["CreateUserRequestAddress"], RecordSchema)

    def test_parameters_merged(self):
        """Тест объединения параметров пути и операции"""
        paths = {
            "/users/{id}": {
                "parameters": [
                    {"name": "id", "in": "path", "schema": {"type": "string"}},
                    {"name": "verbose", "in": "query", "schema": {"type": "boolean"}},
                ],
                "get": {
                    "parameters": [
                        {"name": "id", "in": "path", "schema": {"type": "integer"}},
                        {"name": "X-Trace", "in": "header", "required": True},
                    ],
                    "responses": {},
                },
            }
        }
        parameters = extract(paths=paths).operations[0].parameters

        assert [(p.name, p.location) for p in parameters] == [
            ("id", ParameterLocation.PATH),
            ("verbose", ParameterLocation.QUERY),
            ("X-Trace", ParameterLocation.HEADER),
        ]
        assert parameters[0].type.kind == TypeKind.INTEGER
        assert parameters[0].required
        assert parameters[2].type.kind == TypeKind.ANY

    def test_response_first_success_with_content(self):
        """Тест выбора ответа: первый 2xx с содержимым"""
        paths = {
            "/ping": {
                "get": {
                    "responses": {
                        "404": {
                            "description": "no",
                            "content": {"application/json": {"schema": {"type": "string"}}},
                        },
                        "204": {"description": "empty"},
                        "200": {
                            "description": "ok",
                            "content": {"application/json": {"schema": {"type": "integer"}}},
                        },
                    }
                }
            }
        }
        operation = extract(paths=paths).operations[0]

        assert operation.response.kind == TypeKind.INTEGER

    def test_no_response(self):
        """Тест операции без тела ответа"""
        paths = {"/ping": {"delete": {"responses": {"204": {"description": "ok"}}}}}
        operation = extract(paths=paths).operations[0]

        assert operation.response is None
        assert operation.body is None


class TestSpecInfo:
    """Тесты общих сведений об API"""

    def test_info_servers_security(self):
        """Тест info, servers и securitySchemes"""
        spec = extract(
            servers=[{"url": "https://api.example.com", "description": "prod"}],
            security=[{"key": []}],
        )
        assert spec.title == "Users API"
        assert spec.version == "2.0.0"
        assert spec.servers[0].url == "https://api.example.com"

        content = {
            "openapi": "3.0.0",
            "info": {"title": "T", "version": "1"},
            "paths": {},
            "components": {
                "securitySchemes": {
                    "key": {"type": "apiKey", "name": "X-Key", "in": "header"}
                }
            },
        }
        schemes = extract_spec(upgrade(OpenApiV30Document(content=content))).security_schemes
        assert schemes[0].name == "key"
        assert schemes[0].parameter_name == "X-Key"
        assert schemes[0].location == "header"


class TestPickMediaType:
    """Тесты выбора типа содержимого"""

    @pytest.mark.parametrize(
        "media_types, expected",
        [
            (["text/plain", "application/json"], "application/json"),
            (["text/plain", "application/problem+json"], "application/problem+json"),
            (
                ["application/x-www-form-urlencoded", "multipart/form-data"],
                "multipart/form-data",
            ),
            (["text/plain", "application/xml"], "text/plain"),
            ([], None),
        ],
    )
    def test_preference(self, media_types, expected):
        """Тест порядка предпочтения"""
        assert pick_media_type({media_type: {} for media_type in media_types}) == expected
