"""
Генератор асинхронной Python-библиотеки (aiohttp + pydantic) из ApiSpec
"""

import keyword
import logging
import math
from typing import Any, List, Optional, Set, Tuple, Union

import toml
from pydantic import BaseModel

from ...errors import GenerationError
from ..types.config import GenerationConfig, TargetLanguage
from ..types.ir import (
    AliasSchema,
    ApiSpec,
    EnumSchema,
    Operation,
    ParameterLocation,
    RecordSchema,
    TypeKind,
    TypeRef,
)
from ..types.models import Class, CodeBlock, Function, Parameter, Project, Variable
from ..utils import to_identifier, to_snake_case
from .base import Backend
from .templates import templates

logger = logging.getLogger(__name__)

PRIMITIVES = {
    TypeKind.STRING: "str",
    TypeKind.INTEGER: "int",
    TypeKind.NUMBER: "float",
    TypeKind.BOOLEAN: "bool",
    TypeKind.DATE: "dt.date",
    TypeKind.DATETIME: "dt.datetime",
    TypeKind.BINARY: "bytes",
    TypeKind.ANY: "Any",
}

PLACEHOLDERS = {
    TypeKind.STRING: '"string"',
    TypeKind.INTEGER: "0",
    TypeKind.NUMBER: "0.0",
    TypeKind.BOOLEAN: "False",
    TypeKind.DATE: '"2024-01-01"',
    TypeKind.DATETIME: '"2024-01-01T00:00:00"',
    TypeKind.BINARY: 'b""',
    TypeKind.ARRAY: "[]",
    TypeKind.MAP: "{}",
    TypeKind.ANY: "None",
}

FORM_MEDIA_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

DEFAULT_BASE_URL = "http://localhost"

# Атрибуты BaseClient из common.py
CLIENT_RESERVED = {"close", "set_auth_token", "headers", "base_url"}

# Имена из models.py, которые встречаются в аннотациях полей
MODELS_NAMESPACE = {
    "dt",
    "str",
    "int",
    "float",
    "bool",
    "bytes",
    "Any",
    "ClassVar",
    "Dict",
    "List",
    "Optional",
    "Enum",
    "BaseModel",
    "ConfigDict",
    "Field",
}


def enum_member_name(value: Union[str, int]) -> str:
    """Значение enum -> имя атрибута Python"""
    value = str(value)
    if not value:
        return "EMPTY"
    if value.isspace():
        return "SPACE"

    name = "".join(c.upper() if c.isascii() and c.isalnum() else "_" for c in value)
    while "__" in name:
        name = name.replace("__", "_")
    name = name.strip("_")

    if value.startswith("-") and name:
        name = f"MINUS_{name}"
    elif name and name[0].isdigit():
        name = f"VALUE_{name}"

    return name or "VALUE"


def field_identifier(name: str) -> str:
    """Имя поля модели, которое не конфликтует с атрибутами BaseModel"""
    identifier = to_identifier(name)
    # pydantic считает имена с подчеркиванием приватными атрибутами
    # и занимает пространство имен model_
    if identifier.startswith(("_", "model_")):
        identifier = f"field_{identifier.lstrip('_')}"
    # Атрибут класса перекрыл бы одноименный тип в аннотациях
    if hasattr(BaseModel, identifier) or identifier in MODELS_NAMESPACE:
        identifier = f"{identifier}_"
    return identifier


def python_literal(value: Any) -> Optional[str]:
    """Литерал Python для значения по умолчанию из схемы, None если его нет"""
    if value is None or isinstance(value, (bool, int, str)):
        return repr(value)
    if isinstance(value, float):
        return repr(value) if math.isfinite(value) else None
    if isinstance(value, list):
        items = [python_literal(item) for item in value]
        if any(item is None for item in items):
            return None
        return "[" + ", ".join(items) + "]"
    if isinstance(value, dict):
        items = []
        for key, item in value.items():
            literal = python_literal(item)
            if not isinstance(key, str) or literal is None:
                return None
            items.append(f"{key!r}: {literal}")
        return "{" + ", ".join(items) + "}"
    return None


def method_name(operation: Operation) -> str:
    name = to_identifier(operation.name)
    return f"{name}_" if name in CLIENT_RESERVED else name


def parse_derive(derive: str) -> Tuple[Optional[str], str]:
    """`pkg.mixins.Auditable` -> (строка импорта, имя базового класса)"""
    parts = derive.split(".")
    if not all(part.isidentifier() and not keyword.iskeyword(part) for part in parts):
        raise ValueError(f"некорректное имя базового класса: {derive!r}")

    if len(parts) == 1:
        return None, derive
    return f"from {'.'.join(parts[:-1])} import {parts[-1]}", parts[-1]


class PythonLibraryBuilder:
    """Собирает Project сгенерированной библиотеки"""

    def __init__(self, spec: ApiSpec, config: GenerationConfig):
        self.spec = spec
        self.config = config
        self.package = config.package_name
        self.client_name = f"{config.name}Client"
        self.project = Project(name=self.package)
        self.base_url = self._base_url()

        self.derive_imports: List[str] = []
        self.derive_bases: List[str] = []
        for derive in config.derives:
            import_line, base = parse_derive(derive)
            # Повторяющиеся базовые классы Python не допускает
            if base in self.derive_bases:
                continue
            self.derive_bases.append(base)
            if import_line:
                self.derive_imports.append(import_line)

    def build(self) -> Project:
        """Основная генерация"""
        self._generate_packaging()
        self.project.add_file(f"{self.package}/common.py").add_code_block(
            CodeBlock(code=templates.common.format(base_url=repr(self.base_url)).strip())
        )
        self._generate_models()
        self._generate_client()
        self._generate_package_init()
        if self.config.build_examples:
            self._generate_examples()
        return self.project

    def _base_url(self) -> str:
        if not self.spec.servers:
            return DEFAULT_BASE_URL
        url = self.spec.servers[0].url
        if url.startswith(("http://", "https://")):
            return url
        return DEFAULT_BASE_URL + "/" + url.lstrip("/")

    # Типы

    def _type(self, type_ref: Optional[TypeRef], prefix: str = "") -> str:
        if type_ref is None:
            return "None"

        if type_ref.kind == TypeKind.ARRAY:
            rendered = str(Variable(value=self._type(type_ref.item, prefix), wrap_name="List"))
        elif type_ref.kind == TypeKind.MAP:
            rendered = str(
                Variable(value=["str", self._type(type_ref.item, prefix)], wrap_name="Dict")
            )
        elif type_ref.kind == TypeKind.MODEL:
            rendered = prefix + type_ref.model
        else:
            rendered = PRIMITIVES[type_ref.kind]

        if type_ref.nullable and rendered != "Any":
            rendered = str(Variable(value=rendered, wrap_name="Optional"))
        return rendered

    def _placeholder(
        self, type_ref: TypeRef, prefix: str = "", seen: Optional[Set[str]] = None
    ) -> str:
        """Выражение-заглушка для значения данного типа"""
        if type_ref.nullable:
            return "None"
        if type_ref.kind != TypeKind.MODEL:
            return PLACEHOLDERS[type_ref.kind]

        seen = set(seen or ())
        schema = self.spec.get_schema(type_ref.model)
        if isinstance(schema, EnumSchema):
            return f"list({prefix}{schema.name})[0]" if schema.values else "None"
        if isinstance(schema, AliasSchema) and schema.name not in seen:
            seen.add(schema.name)
            return self._placeholder(schema.type, prefix, seen)
        if isinstance(schema, RecordSchema):
            if self.config.fake:
                return f"{prefix}{schema.name}.dummy()"
            return f"{prefix}{schema.name}.model_construct()"
        return "None"

    # Модели

    def _generate_models(self):
        """Генерация pydantic моделей в models.py"""
        models_file = self.project.add_file(f"{self.package}/models.py")
        models_file.imports.extend(
            [
                "from __future__ import annotations",
                "",
                "import datetime as dt",
                "from enum import Enum",
                "from typing import Any, ClassVar, Dict, List, Optional",
                "",
                "from pydantic import BaseModel, ConfigDict, Field",
            ]
        )
        for import_line in self.derive_imports:
            models_file.add_import(import_line)

        records = []
        aliases = []
        for schema in self.spec.schemas.values():
            if isinstance(schema, EnumSchema):
                models_file.add_class(self._enum_class(schema))
            elif isinstance(schema, RecordSchema):
                models_file.add_class(self._record_class(schema))
                records.append(schema.name)
            else:
                aliases.append(schema)

        # Алиасы вычисляются при импорте, поэтому идут после классов и по зависимостям
        for alias in self._sorted_aliases(aliases):
            line = f"{alias.name} = {self._type(alias.type)}"
            if alias.description:
                line = f"# {alias.description.splitlines()[0]}\n{line}"
            models_file.add_code_block(CodeBlock(code=line, order=-10))

        if records:
            models_file.add_code_block(
                CodeBlock(
                    code="# Разрешение ссылок между моделями\n"
                    + "\n".join(f"{name}.model_rebuild()" for name in records),
                    order=-100,
                )
            )

        names = sorted(self.spec.schemas)
        models_file.add_code_block(CodeBlock(code=f"__all__ = {names!r}", order=-200))

    def _sorted_aliases(self, aliases: List[AliasSchema]) -> List[AliasSchema]:
        by_name = {alias.name: alias for alias in aliases}
        ordered: List[AliasSchema] = []
        visited: Set[str] = set()

        def visit(alias: AliasSchema):
            if alias.name in visited:
                return
            visited.add(alias.name)
            for name in alias.type.referenced_models():
                if name in by_name:
                    visit(by_name[name])
            ordered.append(alias)

        for alias in aliases:
            visit(alias)
        return ordered

    def _enum_class(self, schema: EnumSchema) -> Class:
        is_int = bool(schema.values) and all(isinstance(v, int) for v in schema.values)
        enum_class = Class(
            name=schema.name,
            inherits=["int" if is_int else "str", "Enum"],
            description=schema.description,
        )

        used = set()
        for value in schema.values:
            member = enum_member_name(value)
            candidate = member
            counter = 2
            while candidate in used:
                candidate = f"{member}_{counter}"
                counter += 1
            used.add(candidate)

            enum_class.parameters.append(
                Parameter(
                    name=candidate,
                    default=Variable(value=repr(value if is_int else str(value))),
                )
            )
        return enum_class

    def _record_class(self, schema: RecordSchema) -> Class:
        record = Class(
            name=schema.name,
            inherits=["BaseModel", *self.derive_bases],
            description=schema.description,
        )

        config_args = ["populate_by_name=True"]
        if schema.additional_properties:
            config_args.append('extra="allow"')
        if self.config.ormlite:
            config_args.append("from_attributes=True")
        record.parameters.append(
            Parameter(
                name="model_config",
                default=Variable(value=f"ConfigDict({', '.join(config_args)})"),
            )
        )
        if self.config.ormlite:
            record.parameters.append(
                Parameter(
                    name="__tablename__",
                    var_type=Variable(value="str", wrap_name="ClassVar"),
                    default=Variable(value=repr(to_snake_case(schema.name))),
                )
            )

        used = set()
        dummy_values = []
        for field in schema.fields:
            identifier = field_identifier(field.name)
            candidate = identifier
            counter = 2
            while candidate in used:
                candidate = f"{identifier}_{counter}"
                counter += 1
            used.add(candidate)

            field_type = self._type(field.type)
            if not field.required and not field_type.startswith("Optional[") and field_type != "Any":
                field_type = f"Optional[{field_type}]"

            default = None
            if not field.required:
                default = "None"
                if field.default is not None:
                    default = python_literal(field.default) or "None"
            if candidate != field.name:
                default = (
                    f"Field(alias={field.name!r})"
                    if field.required
                    else f"Field(default={default}, alias={field.name!r})"
                )

            record.parameters.append(
                Parameter(
                    name=candidate,
                    var_type=Variable(value=field_type),
                    default=Variable(value=default) if default else None,
                )
            )
            if field.required:
                dummy_values.append(f"{field.name!r}: {self._placeholder(field.type)}")

        if self.config.fake:
            record.add_function(
                Function(
                    name="dummy",
                    parameters=[Parameter(name="cls")],
                    response=schema.name,
                    decorators=["@classmethod"],
                    description="Экземпляр с заглушками вместо значений",
                    code=CodeBlock(
                        code=f"return cls.model_validate({{{', '.join(dummy_values)}}})"
                    ),
                )
            )
        return record

    # Клиент

    def _generate_client(self):
        """Генерация класса клиента с методом на каждую операцию"""
        client_file = self.project.add_file(f"{self.package}/client.py")
        client_file.imports.extend(
            [
                "from __future__ import annotations",
                "",
                "import datetime as dt",
                "from typing import Any, Dict, List, Optional",
                "",
                "from . import models",
                "from .common import BaseClient, drop_none",
            ]
        )

        description = self.spec.title
        if self.spec.description:
            description += "\n\n" + self.spec.description
        client_class = client_file.add_class(
            self.client_name, inherits=["BaseClient"], description=description
        )

        for scheme in self.spec.security_schemes:
            if scheme.type == "apiKey" and scheme.location == "header" and scheme.parameter_name:
                client_class.add_function(
                    Function(
                        name=f"set_{to_identifier(scheme.name)}",
                        parameters=[Parameter(name="self"), Parameter(name="value", var_type=Variable(value="str"))],
                        response=self.client_name,
                        description=f"Установка ключа {scheme.parameter_name}",
                        code=CodeBlock(
                            code=f"self.headers[{scheme.parameter_name!r}] = value\nreturn self"
                        ),
                    )
                )

        for operation in self.spec.operations:
            client_class.add_function(self._operation_method(operation))

    def _operation_arguments(
        self, operation: Operation
    ) -> List[Tuple[str, Optional[ParameterLocation], str, TypeRef, bool]]:
        """(идентификатор, место, исходное имя, тип, обязательность) для каждого аргумента"""
        arguments = []
        used = {"self"}
        for parameter in operation.parameters:
            identifier = to_identifier(parameter.name)
            if identifier in used:
                identifier = f"{identifier}_{parameter.location.value}"
            used.add(identifier)
            arguments.append(
                (identifier, parameter.location, parameter.name, parameter.type, parameter.required)
            )

        if operation.body is not None:
            identifier = "body" if "body" not in used else "body_"
            arguments.append(
                (identifier, None, "body", operation.body.type, operation.body.required)
            )
        return arguments

    def _operation_method(self, operation: Operation) -> Function:
        arguments = self._operation_arguments(operation)

        required = [Parameter(name="self")]
        optional = []
        for identifier, _, _, type_ref, is_required in arguments:
            arg_type = self._type(type_ref, "models.")
            if is_required:
                required.append(Parameter(name=identifier, var_type=Variable(value=arg_type)))
            else:
                if not arg_type.startswith("Optional[") and arg_type != "Any":
                    arg_type = f"Optional[{arg_type}]"
                optional.append(
                    Parameter(
                        name=identifier,
                        var_type=Variable(value=arg_type),
                        default=Variable(value="None"),
                    )
                )
        parameters = required + ([Parameter(name="*")] + optional if optional else [])

        def mapping(location: ParameterLocation) -> str:
            items = [
                f"{original!r}: {identifier}"
                for identifier, loc, original, _, _ in arguments
                if loc == location
            ]
            return "{" + ", ".join(items) + "}"

        path_params = [a for a in arguments if a[1] == ParameterLocation.PATH]
        if path_params:
            url = f"self._url({operation.path!r}, {mapping(ParameterLocation.PATH)})"
        else:
            url = repr(operation.path)

        call = [repr(operation.method), url]
        for location, keyword_name in (
            (ParameterLocation.QUERY, "params"),
            (ParameterLocation.HEADER, "headers"),
            (ParameterLocation.COOKIE, "cookies"),
        ):
            if any(a[1] == location for a in arguments):
                call.append(f"{keyword_name}=drop_none({mapping(location)})")

        if operation.body is not None:
            body_identifier = arguments[-1][0]
            if operation.body.media_type.startswith(FORM_MEDIA_TYPES) or (
                operation.body.type.kind == TypeKind.BINARY
            ):
                call.append(f"form_body={body_identifier}")
            else:
                call.append(f"json_body={body_identifier}")

        response = self._type(operation.response, "models.")
        if operation.response is not None:
            call.append(f"response_type={response}")

        code = (
            "return await self._request(\n"
            + "".join(f"\t{argument},\n" for argument in call)
            + ")"
        )

        description_parts = [operation.summary, operation.description]
        if operation.deprecated:
            description_parts.append("Deprecated.")
        description_parts.append(f"{operation.method} {operation.path}")

        return Function(
            name=method_name(operation),
            parameters=parameters,
            response=response,
            async_def=True,
            description="\n\n".join(filter(bool, description_parts)),
            code=CodeBlock(code=code),
        )

    # Пакет, примеры, упаковка

    def _generate_package_init(self):
        init_file = self.project.add_file(f"{self.package}/__init__.py")
        init_file.imports.extend(
            [
                "from . import models",
                f"from .client import {self.client_name}",
                "from .common import SendRequestError",
            ]
        )
        init_file.add_code_block(
            CodeBlock(code=f"__all__ = {[self.client_name, 'SendRequestError', 'models']!r}")
        )

    def _generate_examples(self):
        """Пример вызова на каждую операцию в examples/"""
        for operation in self.spec.operations:
            arguments = [
                f"{identifier}={self._placeholder(type_ref, 'models.')}"
                for identifier, _, _, type_ref, is_required in self._operation_arguments(
                    operation
                )
                if is_required
            ]
            self.project.add_file(
                f"examples/{method_name(operation)}.py"
            ).add_code_block(
                CodeBlock(
                    code=templates.example.format(
                        package_name=self.package,
                        client_name=self.client_name,
                        operation=method_name(operation),
                        arguments=", ".join(arguments),
                    ).strip()
                )
            )

    def _generate_packaging(self):
        pyproject = {
            "build-system": {
                "requires": ["setuptools>=61"],
                "build-backend": "setuptools.build_meta",
            },
            "project": {
                "name": self.package,
                "version": self.spec.version or "0.1.0",
                "description": f"Клиент для {self.spec.title}",
                "requires-python": ">=3.10",
                "dependencies": ["aiohttp>=3.8.0", "pydantic>=2.0.0"],
            },
        }
        self.project.add_file("pyproject.toml").add_code_block(
            CodeBlock(code=toml.dumps(pyproject).strip())
        )
        self.project.add_file("README.md").add_code_block(
            CodeBlock(
                code=templates.readme.format(
                    name=self.config.name,
                    title=self.spec.title,
                    version=self.spec.version or "-",
                    package_name=self.package,
                    client_name=self.client_name,
                    base_url=self.base_url,
                ).strip()
            )
        )


class PythonClientGenerator(Backend):
    """Генератор Python-библиотеки"""

    language = TargetLanguage.PYTHON

    def generate(self, spec: ApiSpec, config: GenerationConfig) -> None:
        try:
            project = PythonLibraryBuilder(spec, config).build()
        except ValueError as exc:
            raise GenerationError(self.language, str(exc), exc) from exc

        try:
            written = project.write(config.dest)
        except OSError as exc:
            raise GenerationError(
                self.language, f"не удалось записать файлы в {config.dest}", exc
            ) from exc

        logger.info("Записано %d файлов в %s", len(written), config.dest)
