"""
Извлечение промежуточного представления (ApiSpec) из каноничного документа
"""

import logging
import re
from typing import Any, Dict, List, Optional, Set, Tuple

import jsonref

from ...errors import ExtractionError
from ..types.document import CanonicalDocument
from ..types.ir import (
    AliasSchema,
    ApiSpec,
    EnumSchema,
    Operation,
    OperationParameter,
    ParameterLocation,
    RecordField,
    RecordSchema,
    RequestBody,
    SecurityScheme,
    Server,
    TypeKind,
    TypeRef,
)
from ..utils import to_pascal_case, to_snake_case

logger = logging.getLogger(__name__)

SCHEMA_REF_PREFIX = "#/components/schemas/"

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

STRING_FORMATS = {
    "date": TypeKind.DATE,
    "date-time": TypeKind.DATETIME,
    "binary": TypeKind.BINARY,
}

PRIMITIVE_TYPES = {
    "integer": TypeKind.INTEGER,
    "number": TypeKind.NUMBER,
    "boolean": TypeKind.BOOLEAN,
}


def _no_remote_loader(uri: str, **kwargs):
    raise ValueError(f"внешние ссылки не поддерживаются: {uri}")


def _unescape_pointer(token: str) -> str:
    return token.replace("~1", "/").replace("~0", "~")


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def pick_media_type(content: Dict[str, Any]) -> Optional[str]:
    """JSON, затем +json, затем multipart, затем form, затем первый попавшийся"""
    media_types = list(content.keys())
    if not media_types:
        return None

    for candidate in media_types:
        if candidate.split(";")[0].strip() == "application/json":
            return candidate
    for candidate in media_types:
        if candidate.split(";")[0].strip().endswith("+json"):
            return candidate
    for preferred in ("multipart/form-data", "application/x-www-form-urlencoded"):
        for candidate in media_types:
            if candidate.startswith(preferred):
                return candidate
    return media_types[0]


class SpecExtractor:
    """Обходит каноничный документ и собирает ApiSpec"""

    def __init__(self, document: CanonicalDocument):
        self.document = jsonref.replace_refs(
            document.to_dict(), loader=_no_remote_loader
        )
        self.schemas: Dict[str, Any] = {}
        self.model_names: Dict[str, str] = {}
        self._taken_names: Set[str] = set()
        self._operation_names: Set[str] = set()
        # Схемы, тип которых вычисляется сейчас (id разрешенных объектов)
        self._resolving: Set[int] = set()

    def extract(self) -> ApiSpec:
        """Основное извлечение"""
        info = _as_dict(self.document.get("info"))
        components = _as_dict(self.document.get("components"))
        component_schemas = _as_dict(components.get("schemas"))

        # Сначала регистрируем имена, чтобы ссылки между схемами разрешались
        for original_name in component_schemas:
            self.model_names[original_name] = self._unique_name(
                to_pascal_case(original_name) or "Model"
            )

        for original_name, schema in component_schemas.items():
            name = self.model_names[original_name]
            self.schemas[name] = self._build_component(name, schema)

        operations = self._extract_operations()

        spec = ApiSpec(
            title=_text(info.get("title")) or "API",
            version=str(info.get("version", "")),
            description=_text(info.get("description")),
            servers=self._extract_servers(),
            schemas=self.schemas,
            operations=operations,
            security_schemes=self._extract_security(components),
        )
        logger.debug(
            "Извлечено %d схем и %d операций", len(spec.schemas), len(spec.operations)
        )
        return spec

    # Имена

    def _unique_name(self, name: str) -> str:
        if name[0].isdigit():
            name = f"Model{name}"
        candidate = name
        counter = 2
        while candidate in self._taken_names:
            candidate = f"{name}{counter}"
            counter += 1
        self._taken_names.add(candidate)
        return candidate

    def _operation_name(self, path: str, method: str, operation: Dict[str, Any]) -> str:
        operation_id = _text(operation.get("operationId"))
        if operation_id:
            name = to_snake_case(operation_id)
        else:
            parts = [method]
            for segment in path.strip("/").split("/"):
                match = re.fullmatch(r"\{(.+)\}", segment)
                if match:
                    parts.append(f"by_{match.group(1)}")
                elif segment:
                    parts.append(segment)
            name = to_snake_case("_".join(parts))

        name = name or method
        candidate = name
        counter = 2
        while candidate in self._operation_names:
            candidate = f"{name}_{counter}"
            counter += 1
        self._operation_names.add(candidate)
        return candidate

    # Схемы

    def _component_reference(self, schema: Any) -> Optional[str]:
        """Имя модели, если схема - ссылка на components/schemas"""
        reference = getattr(schema, "__reference__", None)
        if not isinstance(reference, dict):
            return None
        pointer = reference.get("$ref", "")
        if not isinstance(pointer, str) or not pointer.startswith(SCHEMA_REF_PREFIX):
            return None
        token = pointer[len(SCHEMA_REF_PREFIX) :]
        # Ссылка внутрь схемы (#/components/schemas/User/properties/id) - не модель
        if "/" in token:
            return None
        original_name = _unescape_pointer(token)
        if original_name not in self.model_names:
            raise ExtractionError(f"ссылка на неизвестную схему: {pointer}")
        return self.model_names[original_name]

    def _build_component(self, name: str, schema: Any):
        referenced = self._component_reference(schema)
        if referenced:
            return AliasSchema(name=name, type=TypeRef.reference(referenced))

        schema = _as_dict(schema)
        if "enum" in schema:
            return self._build_enum(name, schema)
        if self._is_record(schema):
            return self._build_record(name, schema)

        return AliasSchema(
            name=name,
            type=self._type_of(schema, f"{name}Item"),
            description=_text(schema.get("description")),
        )

    @staticmethod
    def _is_record(schema: Dict[str, Any]) -> bool:
        if isinstance(schema.get("properties"), dict) and schema["properties"]:
            return True
        parts = _as_list(schema.get("allOf"))
        return len(parts) > 1 or (
            len(parts) == 1 and isinstance(schema.get("properties"), dict)
        )

    def _build_enum(self, name: str, schema: Dict[str, Any]) -> EnumSchema:
        values = []
        for value in _as_list(schema.get("enum")):
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (str, int)):
                value = str(value)
            values.append(value)
        return EnumSchema(
            name=name, values=values, description=_text(schema.get("description"))
        )

    def _collect_properties(
        self, schema: Any, seen: Set[int]
    ) -> Tuple[Dict[str, Any], List[str]]:
        """Свойства и обязательные поля схемы вместе с частями allOf"""
        schema = _as_dict(schema)
        if id(schema) in seen:
            return {}, []
        seen.add(id(schema))

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for part in _as_list(schema.get("allOf")):
            part_properties, part_required = self._collect_properties(part, seen)
            properties.update(part_properties)
            required.extend(part_required)

        properties.update(_as_dict(schema.get("properties")))
        required.extend(r for r in _as_list(schema.get("required")) if isinstance(r, str))
        return properties, required

    def _build_record(self, name: str, schema: Dict[str, Any]) -> RecordSchema:
        properties, required = self._collect_properties(schema, set())

        fields = []
        for field_name, field_schema in properties.items():
            field_schema_dict = _as_dict(field_schema)
            fields.append(
                RecordField(
                    name=field_name,
                    type=self._type_of(field_schema, f"{name}{to_pascal_case(field_name)}"),
                    required=field_name in required,
                    description=_text(field_schema_dict.get("description")),
                    default=field_schema_dict.get("default"),
                )
            )

        additional = schema.get("additionalProperties")
        return RecordSchema(
            name=name,
            fields=fields,
            description=_text(schema.get("description")),
            additional_properties=additional is True or isinstance(additional, dict),
        )

    def _hoist(self, hint: str, build) -> TypeRef:
        """Выносит inline схему в отдельную именованную модель"""
        name = self._unique_name(to_pascal_case(hint) or "Model")
        self.schemas[name] = build(name)
        return TypeRef.reference(name)

    def _type_of(self, schema: Any, hint: str) -> TypeRef:
        """Тип из схемы OpenAPI; inline объекты и enum получают имя из hint"""
        referenced = self._component_reference(schema)
        if referenced:
            return TypeRef.reference(referenced)

        if not isinstance(schema, dict):
            return TypeRef.primitive(TypeKind.ANY)

        # Ссылка внутрь схемы может указывать на саму себя
        key = id(getattr(schema, "__subject__", schema))
        if key in self._resolving:
            logger.debug("Циклическая ссылка в схеме %s, тип Any", hint)
            return TypeRef.primitive(TypeKind.ANY)

        self._resolving.add(key)
        try:
            return self._resolve_type(schema, hint)
        finally:
            self._resolving.discard(key)

    def _resolve_type(self, schema: Dict[str, Any], hint: str) -> TypeRef:
        nullable = schema.get("nullable") is True

        if "enum" in schema:
            values = [v for v in _as_list(schema["enum"]) if v is not None]
            if values and all(isinstance(v, str) for v in values):
                return self._with_nullable(
                    self._hoist(hint, lambda name: self._build_enum(name, schema)),
                    nullable,
                )

        all_of = _as_list(schema.get("allOf"))
        if len(all_of) == 1 and not schema.get("properties"):
            return self._with_nullable(self._type_of(all_of[0], hint), nullable)
        if self._is_record(schema):
            return self._with_nullable(
                self._hoist(hint, lambda name: self._build_record(name, schema)),
                nullable,
            )

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            # Список типов в духе OpenAPI 3.1 в документе 3.0
            types = [t for t in schema_type if t != "null"]
            nullable = nullable or len(types) < len(schema_type)
            schema_type = types[0] if len(types) == 1 else None
        if not isinstance(schema_type, str):
            schema_type = None

        if schema_type == "string":
            schema_format = schema.get("format")
            kind = TypeKind.STRING
            if isinstance(schema_format, str):
                kind = STRING_FORMATS.get(schema_format, TypeKind.STRING)
            return TypeRef.primitive(kind, nullable)
        if schema_type in PRIMITIVE_TYPES:
            return TypeRef.primitive(PRIMITIVE_TYPES[schema_type], nullable)
        if schema_type == "array":
            item = self._type_of(schema.get("items", {}), f"{hint}Item")
            return TypeRef.array_of(item, nullable)
        if schema_type == "object" or "additionalProperties" in schema:
            additional = schema.get("additionalProperties")
            if isinstance(additional, dict):
                value = self._type_of(additional, f"{hint}Value")
            else:
                value = TypeRef.primitive(TypeKind.ANY)
            return TypeRef.map_of(value, nullable)

        return TypeRef.primitive(TypeKind.ANY, nullable)

    @staticmethod
    def _with_nullable(type_ref: TypeRef, nullable: bool) -> TypeRef:
        if nullable and not type_ref.nullable:
            return type_ref.model_copy(update={"nullable": True})
        return type_ref

    # Операции

    def _extract_operations(self) -> List[Operation]:
        operations = []
        for path, item in _as_dict(self.document.get("paths")).items():
            if not isinstance(item, dict):
                continue
            path_parameters = _as_list(item.get("parameters"))
            for method in HTTP_METHODS:
                operation = item.get(method)
                if isinstance(operation, dict):
                    operations.append(
                        self._build_operation(path, method, operation, path_parameters)
                    )
        return operations

    def _build_operation(
        self,
        path: str,
        method: str,
        operation: Dict[str, Any],
        path_parameters: List[Any],
    ) -> Operation:
        name = self._operation_name(path, method, operation)
        hint = to_pascal_case(name)

        return Operation(
            name=name,
            method=method.upper(),
            path=path,
            summary=_text(operation.get("summary")),
            description=_text(operation.get("description")),
            tags=[t for t in _as_list(operation.get("tags")) if isinstance(t, str)],
            deprecated=operation.get("deprecated") is True,
            parameters=self._build_parameters(
                path_parameters + _as_list(operation.get("parameters")), hint
            ),
            body=self._build_body(operation.get("requestBody"), hint),
            response=self._build_response(operation.get("responses"), hint),
        )

    def _build_parameters(
        self, parameters: List[Any], hint: str
    ) -> List[OperationParameter]:
        merged: Dict[Tuple[str, str], OperationParameter] = {}
        for parameter in parameters:
            parameter = _as_dict(parameter)
            name = _text(parameter.get("name"))
            try:
                location = ParameterLocation(parameter.get("in"))
            except ValueError:
                logger.debug("Пропущен параметр %r с местом %r", name, parameter.get("in"))
                continue
            if not name:
                continue

            schema = parameter.get("schema")
            if schema is None:
                content = _as_dict(parameter.get("content"))
                media_type = pick_media_type(content)
                schema = _as_dict(content.get(media_type)).get("schema") if media_type else None

            merged[(name, location.value)] = OperationParameter(
                name=name,
                location=location,
                type=self._type_of(schema or {}, f"{hint}{to_pascal_case(name)}"),
                required=location == ParameterLocation.PATH
                or parameter.get("required") is True,
                description=_text(parameter.get("description")),
            )
        return list(merged.values())

    def _build_body(self, request_body: Any, hint: str) -> Optional[RequestBody]:
        request_body = _as_dict(request_body)
        content = _as_dict(request_body.get("content"))
        media_type = pick_media_type(content)
        if media_type is None:
            return None

        schema = _as_dict(content[media_type]).get("schema", {})
        return RequestBody(
            media_type=media_type,
            type=self._type_of(schema, f"{hint}Request"),
            required=request_body.get("required") is True,
            description=_text(request_body.get("description")),
        )

    def _build_response(self, responses: Any, hint: str) -> Optional[TypeRef]:
        responses = _as_dict(responses)
        success_codes = sorted(code for code in responses if str(code).startswith("2"))

        for code in success_codes:
            content = _as_dict(_as_dict(responses[code]).get("content"))
            media_type = pick_media_type(content)
            if media_type is None:
                continue
            schema = _as_dict(content[media_type]).get("schema")
            if schema is None:
                continue
            return self._type_of(schema, f"{hint}Response")

        return None

    # Прочее

    def _extract_servers(self) -> List[Server]:
        servers = []
        for server in _as_list(self.document.get("servers")):
            server = _as_dict(server)
            url = _text(server.get("url"))
            if url:
                servers.append(
                    Server(url=url, description=_text(server.get("description")))
                )
        return servers

    @staticmethod
    def _extract_security(components: Dict[str, Any]) -> List[SecurityScheme]:
        schemes = []
        for name, scheme in _as_dict(components.get("securitySchemes")).items():
            scheme = _as_dict(scheme)
            schemes.append(
                SecurityScheme(
                    name=name,
                    type=str(scheme.get("type", "")),
                    location=_text(scheme.get("in")),
                    parameter_name=_text(scheme.get("name")),
                    scheme=_text(scheme.get("scheme")),
                )
            )
        return schemes


def extract_spec(document: CanonicalDocument) -> ApiSpec:
    """Каноничный документ -> промежуточное представление"""
    try:
        return SpecExtractor(document).extract()
    except jsonref.JsonRefError as exc:
        raise ExtractionError(f"не удалось разрешить $ref: {exc}", exc) from exc
    except (KeyError, TypeError, ValueError) as exc:
        raise ExtractionError(str(exc), exc) from exc
    except RecursionError as exc:
        raise ExtractionError("слишком глубокая вложенность схем", exc) from exc
