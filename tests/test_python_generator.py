"""
Тесты генератора Python-библиотеки
"""

import datetime
import importlib.util
import sys

import pytest

from openapi_libgen.errors import GenerationError
from openapi_libgen.internal.generator.python_generator import (
    PythonClientGenerator,
    enum_member_name,
    field_identifier,
    parse_derive,
    python_literal,
)
from openapi_libgen.internal.parser.extractor import extract_spec
from openapi_libgen.internal.parser.normalizer import upgrade
from openapi_libgen.internal.types.config import Flag, GenerateInputs, build_config
from openapi_libgen.internal.types.document import OpenApiV30Document

USERS_API = {
    "openapi": "3.0.0",
    "info": {"title": "Users API", "version": "2.0.0"},
    "servers": [{"url": "https://api.example.com/v2"}],
    "paths": {
        "/users": {
            "get": {
                "operationId": "listUsers",
                "summary": "Список пользователей",
                "parameters": [
                    {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                    {"name": "X-Trace", "in": "header", "schema": {"type": "string"}},
                ],
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/Users"}
                            }
                        },
                    }
                },
            },
            "post": {
                "operationId": "createUser",
                "requestBody": {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": "#/components/schemas/User"}
                        }
                    },
                },
                "responses": {
                    "201": {
                        "description": "created",
                        "content": {
                            "application/json": {
                                "schema": {"$ref": "#/components/schemas/User"}
                            }
                        },
                    }
                },
            },
        },
        "/users/{id}": {
            "delete": {
                "operationId": "deleteUser",
                "parameters": [
                    {"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}
                ],
                "responses": {"204": {"description": "deleted"}},
            }
        },
    },
    "components": {
        "schemas": {
            "User": {
                "type": "object",
                "description": "Пользователь",
                "required": ["id", "userName", "role"],
                "properties": {
                    "id": {"type": "integer"},
                    "userName": {"type": "string"},
                    "role": {"$ref": "#/components/schemas/Role"},
                    "created_at": {"type": "string", "format": "date-time"},
                    "model_type": {"type": "string"},
                    "manager": {"$ref": "#/components/schemas/User"},
                },
            },
            "Users": {"type": "array", "items": {"$ref": "#/components/schemas/User"}},
            "Role": {"type": "string", "enum": ["admin", "read-only", "2fa"]},
        },
        "securitySchemes": {
            "apiKey": {"type": "apiKey", "name": "X-Api-Key", "in": "header"}
        },
    },
}


NOTES_API = {
    "openapi": "3.0.0",
    "info": {"title": "Notes API", "version": "1.0.0"},
    "paths": {
        "/notes": {
            "get": {
                "operationId": "listNotes",
                "summary": 'Список "заметок"',
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "array",
                                    "items": {"$ref": "#/components/schemas/Note"},
                                }
                            }
                        },
                    }
                },
            }
        }
    },
    "components": {
        "schemas": {
            "Note": {
                "type": "object",
                "description": 'Заметка "A"',
                "required": ["str", "dt"],
                "properties": {
                    "str": {"type": "string"},
                    "dt": {"type": "string", "format": "date"},
                    "int": {"type": "integer"},
                    "page_size": {"type": "integer", "default": 10},
                    "tags": {"type": "array", "items": {"type": "string"}, "default": ["a"]},
                    "ratio": {"type": "number", "default": 0.5},
                },
            }
        }
    },
}


def generate(tmp_path, content=USERS_API, **inputs):
    inputs.setdefault("name", "users_api")
    config = build_config(GenerateInputs(output_dir=tmp_path, **inputs))
    spec = extract_spec(upgrade(OpenApiV30Document(content=content)))
    PythonClientGenerator().generate(spec, config)
    return tmp_path


def load_models(path, module_name):
    """Импорт сгенерированного models.py"""
    module_spec = importlib.util.spec_from_file_location(module_name, path)
    module = importlib.util.module_from_spec(module_spec)
    sys.modules[module_name] = module
    try:
        module_spec.loader.exec_module(module)
    finally:
        sys.modules.pop(module_name, None)
    return module


class TestPythonClientGenerator:
    """Тесты основной функциональности генератора"""

    def test_files_written(self, tmp_path):
        """Тест набора сгенерированных файлов"""
        out = generate(tmp_path)

        for file_name in (
            "pyproject.toml",
            "README.md",
            "users_api/__init__.py",
            "users_api/common.py",
            "users_api/models.py",
            "users_api/client.py",
            "examples/list_users.py",
            "examples/create_user.py",
            "examples/delete_user.py",
        ):
            assert (out / file_name).is_file(), file_name

    def test_sources_compile(self, tmp_path):
        """Тест: все сгенерированные файлы - корректный Python"""
        out = generate(tmp_path, flags=[Flag.FAKE, Flag.ORMLITE])

        for path in out.rglob("*.py"):
            compile(path.read_text(encoding="utf-8"), str(path), "exec")

    def test_client_methods(self, tmp_path):
        """Тест методов клиента"""
        client = (generate(tmp_path) / "users_api/client.py").read_text(encoding="utf-8")

        assert "class UsersApiClient(BaseClient):" in client
        assert "async def list_users(" in client
        assert "limit: Optional[int] = None," in client
        assert "headers=drop_none({'X-Trace': x_trace})" in client
        assert "response_type=models.Users" in client
        assert "json_body=body" in client
        assert "self._url('/users/{id}', {'id': id})" in client
        assert "async def delete_user(self, id: int) -> None:" in client
        assert "def set_api_key(self, value: str) -> UsersApiClient:" in client

    def test_base_url(self, tmp_path):
        """Тест адреса сервера по умолчанию"""
        common = (generate(tmp_path) / "users_api/common.py").read_text(encoding="utf-8")
        assert "base_url: str = 'https://api.example.com/v2'," in common

    def test_pyproject(self, tmp_path):
        """Тест pyproject.toml сгенерированной библиотеки"""
        import toml

        pyproject = toml.load(str(generate(tmp_path) / "pyproject.toml"))

        assert pyproject["project"]["name"] == "users_api"
        assert pyproject["project"]["version"] == "2.0.0"
        assert "pydantic>=2.0.0" in pyproject["project"]["dependencies"]

    def test_models_importable(self, tmp_path):
        """Тест: модели импортируются и проверяют данные"""
        out = generate(tmp_path, flags=[Flag.FAKE])
        models = load_models(out / "users_api/models.py", "generated_users_models")

        user = models.User.model_validate(
            {"id": 1, "userName": "neo", "role": "read-only", "model_type": "x"}
        )
        assert user.user_name == "neo"
        assert user.field_model_type == "x"
        assert user.role == models.Role.READ_ONLY
        assert models.Role.VALUE_2FA.value == "2fa"

        dummy = models.User.dummy()
        assert dummy.role == models.Role.ADMIN

    def test_quotes_in_descriptions(self, tmp_path):
        """Тест: описания с кавычками на конце дают корректный Python"""
        out = generate(tmp_path, NOTES_API, name="notes_api")
        models = (out / "notes_api/models.py").read_text(encoding="utf-8")

        assert '"""Заметка "A\\""""' in models
        for path in out.rglob("*.py"):
            compile(path.read_text(encoding="utf-8"), str(path), "exec")

    def test_field_names_do_not_shadow_types(self, tmp_path):
        """Тест: поля с именами типов не перекрывают аннотации"""
        out = generate(tmp_path, NOTES_API, name="notes_api")
        models = load_models(out / "notes_api/models.py", "generated_notes_models")

        note = models.Note.model_validate({"str": "x", "dt": "2024-01-02", "int": 3})
        assert note.str_ == "x"
        assert note.dt_ == datetime.date(2024, 1, 2)
        assert note.int_ == 3
        assert note.model_dump(by_alias=True)["str"] == "x"

    def test_schema_defaults(self, tmp_path):
        """Тест значений по умолчанию из схемы"""
        out = generate(tmp_path, NOTES_API, name="notes_api")
        source = (out / "notes_api/models.py").read_text(encoding="utf-8")

        assert "page_size: Optional[int] = 10" in source
        assert "tags: Optional[List[str]] = ['a']" in source
        assert "int_: Optional[int] = Field(default=None, alias='int')" in source

        models = load_models(out / "notes_api/models.py", "generated_notes_defaults")
        note = models.Note(str="x", dt="2024-01-02")
        assert note.page_size == 10
        assert note.tags == ["a"]
        assert note.ratio == 0.5

    def test_examples_disabled(self, tmp_path):
        """Тест отключения примеров"""
        out = generate(tmp_path, examples=False)
        assert not (out / "examples").exists()

    def test_examples_content(self, tmp_path):
        """Тест содержимого примера"""
        example = (generate(tmp_path) / "examples/create_user.py").read_text(encoding="utf-8")

        assert "from users_api import UsersApiClient" in example
        assert "await client.create_user(body=models.User.model_construct())" in example


class TestFlagsAndDerives:
    """Тесты флагов и дополнительных базовых классов"""

    def test_ormlite(self, tmp_path):
        """Тест флага ormlite"""
        models = (generate(tmp_path, flags=[Flag.ORMLITE]) / "users_api/models.py").read_text(
            encoding="utf-8"
        )

        assert "__tablename__: ClassVar[str] = 'user'" in models
        assert "from_attributes=True" in models

    def test_no_flags(self, tmp_path):
        """Тест: без флагов нет ORM-метаданных и dummy()"""
        models = (generate(tmp_path) / "users_api/models.py").read_text(encoding="utf-8")

        assert "__tablename__" not in models
        assert "def dummy" not in models

    def test_derives(self, tmp_path):
        """Тест дополнительных базовых классов моделей"""
        out = generate(
            tmp_path, derives=["mixins.Auditable", "Hashable", "mixins.Auditable"]
        )
        models = (out / "users_api/models.py").read_text(encoding="utf-8")

        assert "from mixins import Auditable" in models
        assert "class User(BaseModel, Auditable, Hashable):" in models

    def test_invalid_derive(self, tmp_path):
        """Тест некорректного имени базового класса"""
        with pytest.raises(GenerationError) as exc_info:
            generate(tmp_path, derives=["not valid"])

        assert exc_info.value.language == "python"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_filesystem_error(self, tmp_path):
        """Тест ошибки записи файлов"""
        blocker = tmp_path / "file"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(GenerationError) as exc_info:
            generate(blocker)

        assert isinstance(exc_info.value.__cause__, OSError)


class TestNamingHelpers:
    """Тесты вспомогательных функций имен"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("active", "ACTIVE"),
            ("read-only", "READ_ONLY"),
            ("2fa", "VALUE_2FA"),
            ("", "EMPTY"),
            (" ", "SPACE"),
            ("-1", "MINUS_1"),
            (5, "VALUE_5"),
        ],
    )
    def test_enum_member_name(self, value, expected):
        """Тест имен элементов enum"""
        assert enum_member_name(value) == expected

    def test_field_identifier(self):
        """Тест имен полей, конфликтующих с BaseModel"""
        assert field_identifier("model_type") == "field_model_type"
        assert field_identifier("json") == "json_"
        assert field_identifier("userName") == "user_name"
        assert field_identifier("2fa") == "field_2fa"
        assert field_identifier("str") == "str_"
        assert field_identifier("dt") == "dt_"
        assert field_identifier("Optional") == "optional"

    @pytest.mark.parametrize(
        "value, expected",
        [
            (10, "10"),
            ("a", "'a'"),
            (True, "True"),
            ([1, None, "b"], "[1, None, 'b']"),
            ({"k": [0.5]}, "{'k': [0.5]}"),
            (float("nan"), None),
            (datetime.date(2024, 1, 1), None),
            ([datetime.date(2024, 1, 1)], None),
        ],
    )
    def test_python_literal(self, value, expected):
        """Тест литералов значений по умолчанию"""
        assert python_literal(value) == expected

    def test_parse_derive(self):
        """Тест разбора имени базового класса"""
        assert parse_derive("Hashable") == (None, "Hashable")
        assert parse_derive("a.b.C") == ("from a.b import C", "C")
        with pytest.raises(ValueError):
            parse_derive("a..C")
