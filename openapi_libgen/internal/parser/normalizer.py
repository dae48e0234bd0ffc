"""
Приведение спецификации любой поддерживаемой версии к OpenAPI 3.0

Все функции здесь тотальны: документ, который прошел чтение, всегда
приводится к каноничному виду. Поля неожиданного типа считаются пустыми.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from ..types.document import (
    CanonicalDocument,
    OpenApiV30Document,
    OpenApiV31Document,
    SchemaVersion,
    SwaggerV2Document,
    VersionedDocument,
)

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

DEFAULT_MEDIA_TYPES = ["application/json"]

SCHEMA_KEYWORDS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "minLength",
    "maxLength",
    "pattern",
    "minItems",
    "maxItems",
    "uniqueItems",
    "multipleOf",
)

# Swagger 2.0 collectionFormat -> (style, explode) OpenAPI 3.0
COLLECTION_FORMATS = {
    "csv": ("form", False),
    "ssv": ("spaceDelimited", False),
    "pipes": ("pipeDelimited", False),
    "multi": ("form", True),
}

REF_PREFIXES = {
    "#/definitions/": "#/components/schemas/",
    "#/parameters/": "#/components/parameters/",
    "#/responses/": "#/components/responses/",
}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _extensions(node: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: value
        for key, value in node.items()
        if isinstance(key, str) and key.startswith("x-")
    }


def _copy_keys(source: Dict[str, Any], keys) -> Dict[str, Any]:
    return {key: copy.deepcopy(source[key]) for key in keys if key in source}


def _media_types(value: Any) -> List[str]:
    return [media_type for media_type in _as_list(value) if isinstance(media_type, str)]


# Обход схем


def _map_schema(schema: Any, convert: Callable[[Dict[str, Any]], Dict[str, Any]]) -> Any:
    """Применяет convert к схеме и ко всем вложенным схемам"""
    if not isinstance(schema, dict):
        return schema

    schema = convert(dict(schema))

    if isinstance(schema.get("properties"), dict):
        schema["properties"] = {
            name: _map_schema(prop, convert)
            for name, prop in schema["properties"].items()
        }
    for key in ("items", "additionalProperties", "not"):
        if isinstance(schema.get(key), dict):
            schema[key] = _map_schema(schema[key], convert)
    for key in ("allOf", "anyOf", "oneOf"):
        if isinstance(schema.get(key), list):
            schema[key] = [_map_schema(item, convert) for item in schema[key]]

    return schema


def _map_content_schemas(content: Any, convert) -> Any:
    if not isinstance(content, dict):
        return content
    result = {}
    for media_type, media in content.items():
        if isinstance(media, dict) and "schema" in media:
            media = {**media, "schema": _map_schema(media["schema"], convert)}
        result[media_type] = media
    return result


def _map_parameter(parameter: Any, convert) -> Any:
    if not isinstance(parameter, dict):
        return parameter
    parameter = dict(parameter)
    if "schema" in parameter:
        parameter["schema"] = _map_schema(parameter["schema"], convert)
    if "content" in parameter:
        parameter["content"] = _map_content_schemas(parameter["content"], convert)
    return parameter


def _map_headers(headers: Any, convert) -> Any:
    if not isinstance(headers, dict):
        return headers
    return {name: _map_parameter(header, convert) for name, header in headers.items()}


def _map_response(response: Any, convert) -> Any:
    if not isinstance(response, dict):
        return response
    response = dict(response)
    if "content" in response:
        response["content"] = _map_content_schemas(response["content"], convert)
    if "headers" in response:
        response["headers"] = _map_headers(response["headers"], convert)
    return response


def _map_request_body(body: Any, convert) -> Any:
    if not isinstance(body, dict) or "content" not in body:
        return body
    return {**body, "content": _map_content_schemas(body["content"], convert)}


def _map_operation(operation: Any, convert) -> Any:
    if not isinstance(operation, dict):
        return operation
    operation = dict(operation)
    if isinstance(operation.get("parameters"), list):
        operation["parameters"] = [
            _map_parameter(p, convert) for p in operation["parameters"]
        ]
    if "requestBody" in operation:
        operation["requestBody"] = _map_request_body(operation["requestBody"], convert)
    if isinstance(operation.get("responses"), dict):
        operation["responses"] = {
            code: _map_response(r, convert) for code, r in operation["responses"].items()
        }
    return operation


def _map_document_schemas(document: Dict[str, Any], convert) -> Dict[str, Any]:
    """Применяет convert ко всем схемам OpenAPI 3.x документа"""
    document = dict(document)

    paths = {}
    for path, item in _as_dict(document.get("paths")).items():
        if isinstance(item, dict):
            item = dict(item)
            for method in HTTP_METHODS:
                if method in item:
                    item[method] = _map_operation(item[method], convert)
            if isinstance(item.get("parameters"), list):
                item["parameters"] = [_map_parameter(p, convert) for p in item["parameters"]]
        paths[path] = item
    document["paths"] = paths

    components = dict(_as_dict(document.get("components")))
    if isinstance(components.get("schemas"), dict):
        components["schemas"] = {
            name: _map_schema(schema, convert)
            for name, schema in components["schemas"].items()
        }
    if isinstance(components.get("parameters"), dict):
        components["parameters"] = {
            name: _map_parameter(p, convert)
            for name, p in components["parameters"].items()
        }
    if isinstance(components.get("responses"), dict):
        components["responses"] = {
            name: _map_response(r, convert)
            for name, r in components["responses"].items()
        }
    if isinstance(components.get("requestBodies"), dict):
        components["requestBodies"] = {
            name: _map_request_body(b, convert)
            for name, b in components["requestBodies"].items()
        }
    if isinstance(components.get("headers"), dict):
        components["headers"] = _map_headers(components["headers"], convert)
    if components:
        document["components"] = components

    return document


def _rewrite_refs(value: Any) -> Any:
    """Переписывает $ref из Swagger 2.0 в пути OpenAPI 3.0"""
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if key == "$ref" and isinstance(item, str):
                for old, new in REF_PREFIXES.items():
                    if item.startswith(old):
                        item = new + item[len(old) :]
                        break
                result[key] = item
            else:
                result[key] = _rewrite_refs(item)
        return result
    if isinstance(value, list):
        return [_rewrite_refs(item) for item in value]
    return value


# OpenAPI 3.0 / 3.1


def _canonical_from_v3(content: Dict[str, Any]) -> CanonicalDocument:
    content = copy.deepcopy(content)
    external_docs = content.get("externalDocs")

    return CanonicalDocument(
        info=_as_dict(content.get("info")),
        servers=[s for s in _as_list(content.get("servers")) if isinstance(s, dict)],
        paths=_as_dict(content.get("paths")),
        components=_as_dict(content.get("components")),
        security=[s for s in _as_list(content.get("security")) if isinstance(s, dict)],
        tags=[t for t in _as_list(content.get("tags")) if isinstance(t, dict)],
        external_docs=external_docs if isinstance(external_docs, dict) else None,
        extensions=_extensions(content),
    )


def _upgrade_openapi_30(document: OpenApiV30Document) -> CanonicalDocument:
    return _canonical_from_v3(document.content)


def _downgrade_schema_31(schema: Dict[str, Any]) -> Dict[str, Any]:
    """Схема JSON Schema 2020-12 (OpenAPI 3.1) -> схема OpenAPI 3.0"""
    schema_type = schema.get("type")
    if isinstance(schema_type, list):
        types = [t for t in schema_type if t != "null"]
        if len(types) < len(schema_type):
            schema["nullable"] = True
        if len(types) == 1:
            schema["type"] = types[0]
        elif types:
            del schema["type"]
            schema["anyOf"] = [{"type": t} for t in types]
        else:
            del schema["type"]
    elif schema_type == "null":
        del schema["type"]
        schema["nullable"] = True

    if "const" in schema:
        schema["enum"] = [schema.pop("const")]

    examples = schema.get("examples")
    if isinstance(examples, list):
        del schema["examples"]
        if examples:
            schema.setdefault("example", examples[0])

    for exclusive, bound in (
        ("exclusiveMinimum", "minimum"),
        ("exclusiveMaximum", "maximum"),
    ):
        value = schema.get(exclusive)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            schema[bound] = value
            schema[exclusive] = True

    return schema


def _upgrade_openapi_31(document: OpenApiV31Document) -> CanonicalDocument:
    content = _map_document_schemas(document.content, _downgrade_schema_31)

    webhooks = content.pop("webhooks", None)
    if webhooks is not None:
        logger.debug("webhooks из OpenAPI 3.1 сохранены как x-webhooks")
        content["x-webhooks"] = webhooks

    return _canonical_from_v3(content)


# Swagger 2.0


def _convert_schema_v2(schema: Dict[str, Any]) -> Dict[str, Any]:
    if schema.get("type") == "file":
        schema["type"] = "string"
        schema["format"] = "binary"
    if "x-nullable" in schema:
        schema["nullable"] = bool(schema.pop("x-nullable"))
    if isinstance(schema.get("discriminator"), str):
        schema["discriminator"] = {"propertyName": schema["discriminator"]}
    return schema


def _schema_from_parameter(parameter: Dict[str, Any]) -> Dict[str, Any]:
    """Поля типа параметра Swagger 2.0 -> отдельная схема"""
    schema = _copy_keys(parameter, SCHEMA_KEYWORDS)
    if isinstance(schema.get("items"), dict):
        schema["items"] = _map_schema(
            _schema_from_parameter(schema["items"]), _convert_schema_v2
        )
    return _convert_schema_v2(schema)


def _convert_parameter_v2(parameter: Dict[str, Any]) -> Dict[str, Any]:
    if "$ref" in parameter:
        return {"$ref": parameter["$ref"]}

    converted = _copy_keys(
        parameter, ("name", "in", "description", "required", "allowEmptyValue")
    )
    converted["schema"] = _schema_from_parameter(parameter)

    collection_format = parameter.get("collectionFormat")
    if (
        parameter.get("type") == "array"
        and isinstance(collection_format, str)
        and collection_format in COLLECTION_FORMATS
    ):
        style, explode = COLLECTION_FORMATS[collection_format]
        if parameter.get("in") in ("path", "header") and style == "form":
            style = "simple"
        converted["style"] = style
        converted["explode"] = explode

    converted.update(_extensions(parameter))
    return converted


def _body_from_parameter(
    parameter: Dict[str, Any], consumes: List[str]
) -> Dict[str, Any]:
    schema = _map_schema(copy.deepcopy(parameter.get("schema", {})), _convert_schema_v2)
    body = {"content": {media_type: {"schema": schema} for media_type in consumes}}
    if "description" in parameter:
        body["description"] = parameter["description"]
    if parameter.get("required"):
        body["required"] = True
    body.update(_extensions(parameter))
    return body


def _body_from_form(form: List[Dict[str, Any]], consumes: List[str]) -> Dict[str, Any]:
    properties = {}
    required = []
    for parameter in form:
        name = parameter.get("name")
        if not isinstance(name, str):
            continue
        prop = _schema_from_parameter(parameter)
        if "description" in parameter:
            prop["description"] = parameter["description"]
        properties[name] = prop
        if parameter.get("required"):
            required.append(name)

    has_file = any(p.get("type") == "file" for p in form)
    if has_file or "multipart/form-data" in consumes:
        media_type = "multipart/form-data"
    else:
        media_type = "application/x-www-form-urlencoded"

    schema = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required

    body = {"content": {media_type: {"schema": schema}}}
    if required:
        body["required"] = True
    return body


def _convert_response_v2(response: Any, produces: List[str]) -> Any:
    if not isinstance(response, dict):
        return response
    if "$ref" in response:
        return {"$ref": response["$ref"]}

    converted = {"description": response.get("description", "")}

    if isinstance(response.get("schema"), dict):
        schema = _map_schema(copy.deepcopy(response["schema"]), _convert_schema_v2)
        converted["content"] = {
            media_type: {"schema": schema} for media_type in produces
        }

    examples = _as_dict(response.get("examples"))
    for media_type, example in examples.items():
        content = converted.setdefault("content", {})
        content.setdefault(media_type, {})["example"] = copy.deepcopy(example)

    headers = _as_dict(response.get("headers"))
    if headers:
        converted["headers"] = {}
        for name, header in headers.items():
            header = _as_dict(header)
            item = {"schema": _schema_from_parameter(header)}
            if "description" in header:
                item["description"] = header["description"]
            converted["headers"][name] = item

    converted.update(_extensions(response))
    return converted


def _resolve_parameter_v2(
    parameter: Any, global_parameters: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Возвращает тело параметра, разворачивая ссылку на глобальный параметр"""
    if not isinstance(parameter, dict):
        return None
    ref = parameter.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/parameters/"):
        target = global_parameters.get(ref[len("#/parameters/") :])
        return target if isinstance(target, dict) else None
    return parameter


def _convert_operation_v2(
    operation: Dict[str, Any],
    path_parameters: List[Any],
    spec: Dict[str, Any],
) -> Dict[str, Any]:
    global_parameters = _as_dict(spec.get("parameters"))
    consumes = _media_types(operation.get("consumes")) or _media_types(spec.get("consumes"))
    produces = _media_types(operation.get("produces")) or _media_types(spec.get("produces"))
    consumes = consumes or DEFAULT_MEDIA_TYPES
    produces = produces or DEFAULT_MEDIA_TYPES

    converted = _copy_keys(
        operation,
        (
            "tags",
            "summary",
            "description",
            "externalDocs",
            "operationId",
            "deprecated",
            "security",
        ),
    )

    # Параметры операции переопределяют параметры пути с тем же (name, in)
    merged = {}
    for parameter in path_parameters + _as_list(operation.get("parameters")):
        resolved = _resolve_parameter_v2(parameter, global_parameters)
        if resolved is None:
            continue
        key = (str(resolved.get("name")), str(resolved.get("in")))
        merged[key] = (parameter, resolved)

    parameters = []
    form = []
    for parameter, resolved in merged.values():
        location = resolved.get("in")
        ref = parameter.get("$ref")
        if location == "body":
            if isinstance(ref, str):
                name = ref[len("#/parameters/") :]
                converted["requestBody"] = {"$ref": f"#/components/requestBodies/{name}"}
            else:
                converted["requestBody"] = _body_from_parameter(resolved, consumes)
        elif location == "formData":
            form.append(resolved)
        else:
            parameters.append(_convert_parameter_v2(parameter))

    if form:
        converted["requestBody"] = _body_from_form(form, consumes)
    if parameters:
        converted["parameters"] = parameters

    converted["responses"] = {
        str(code): _convert_response_v2(response, produces)
        for code, response in _as_dict(operation.get("responses")).items()
    }

    converted.update(_extensions(operation))
    return converted


def _convert_security_scheme_v2(scheme: Any) -> Any:
    if not isinstance(scheme, dict):
        return scheme

    scheme_type = scheme.get("type")
    if scheme_type == "basic":
        converted = {"type": "http", "scheme": "basic"}
    elif scheme_type == "apiKey":
        converted = _copy_keys(scheme, ("type", "name", "in"))
    elif scheme_type == "oauth2":
        flow = {"scopes": copy.deepcopy(_as_dict(scheme.get("scopes")))}
        flow.update(_copy_keys(scheme, ("authorizationUrl", "tokenUrl")))
        flow_type = scheme.get("flow")
        flow_name = {
            "implicit": "implicit",
            "password": "password",
            "application": "clientCredentials",
            "accessCode": "authorizationCode",
        }.get(flow_type if isinstance(flow_type, str) else "implicit", "implicit")
        converted = {"type": "oauth2", "flows": {flow_name: flow}}
    else:
        converted = copy.deepcopy(scheme)

    if "description" in scheme:
        converted["description"] = scheme["description"]
    converted.update(_extensions(scheme))
    return converted


def _servers_v2(spec: Dict[str, Any]) -> List[Dict[str, Any]]:
    host = spec.get("host")
    base_path = spec.get("basePath") if isinstance(spec.get("basePath"), str) else ""

    if not isinstance(host, str) or not host:
        return [{"url": base_path}] if base_path else []

    schemes = [s for s in _as_list(spec.get("schemes")) if isinstance(s, str)]
    return [{"url": f"{scheme}://{host}{base_path}"} for scheme in schemes or ["https"]]


def _upgrade_swagger_2(document: SwaggerV2Document) -> CanonicalDocument:
    spec = document.content

    components = {}
    definitions = _as_dict(spec.get("definitions"))
    if definitions:
        components["schemas"] = {
            name: _map_schema(copy.deepcopy(schema), _convert_schema_v2)
            for name, schema in definitions.items()
        }

    consumes = _media_types(spec.get("consumes")) or DEFAULT_MEDIA_TYPES
    parameters = {}
    request_bodies = {}
    for name, parameter in _as_dict(spec.get("parameters")).items():
        parameter = _as_dict(parameter)
        if parameter.get("in") == "body":
            request_bodies[name] = _body_from_parameter(parameter, consumes)
        elif parameter.get("in") == "formData":
            request_bodies[name] = _body_from_form([parameter], consumes)
        else:
            parameters[name] = _convert_parameter_v2(parameter)
    if parameters:
        components["parameters"] = parameters
    if request_bodies:
        components["requestBodies"] = request_bodies

    produces = _media_types(spec.get("produces")) or DEFAULT_MEDIA_TYPES
    responses = {
        name: _convert_response_v2(response, produces)
        for name, response in _as_dict(spec.get("responses")).items()
    }
    if responses:
        components["responses"] = responses

    security_schemes = {
        name: _convert_security_scheme_v2(scheme)
        for name, scheme in _as_dict(spec.get("securityDefinitions")).items()
    }
    if security_schemes:
        components["securitySchemes"] = security_schemes

    paths = {}
    for path, item in _as_dict(spec.get("paths")).items():
        if not isinstance(item, dict):
            continue
        path_parameters = _as_list(item.get("parameters"))
        converted = {}
        for method in HTTP_METHODS:
            if isinstance(item.get(method), dict):
                converted[method] = _convert_operation_v2(
                    item[method], path_parameters, spec
                )
        converted.update(_extensions(item))
        paths[path] = converted

    content = {
        "info": copy.deepcopy(_as_dict(spec.get("info"))),
        "servers": _servers_v2(spec),
        "paths": paths,
        "components": components,
        "security": copy.deepcopy(_as_list(spec.get("security"))),
        "tags": copy.deepcopy(_as_list(spec.get("tags"))),
        **_extensions(spec),
    }
    if isinstance(spec.get("externalDocs"), dict):
        content["externalDocs"] = spec["externalDocs"]

    return _canonical_from_v3(_rewrite_refs(content))


UPGRADERS: Dict[SchemaVersion, Callable[[Any], CanonicalDocument]] = {
    SchemaVersion.SWAGGER_2_0: _upgrade_swagger_2,
    SchemaVersion.OPENAPI_3_0: _upgrade_openapi_30,
    SchemaVersion.OPENAPI_3_1: _upgrade_openapi_31,
}


def upgrade(document: VersionedDocument) -> CanonicalDocument:
    """Приведение документа любой поддерживаемой версии к каноничному виду"""
    version = SchemaVersion(document.version)
    logger.debug("Приведение версии %s к OpenAPI 3.0", version.value)
    return UPGRADERS[version](document)
