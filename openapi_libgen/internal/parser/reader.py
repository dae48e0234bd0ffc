"""
Чтение файла спецификации и определение версии схемы
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ...errors import SpecFileNotFoundError, SpecParseError, UnsupportedExtensionError
from ..types.document import (
    RawDocument,
    SchemaVersion,
    SpecFormat,
    VersionedDocument,
    versioned_document_adapter,
)

logger = logging.getLogger(__name__)

EXTENSION_FORMATS = {
    ".yaml": SpecFormat.YAML,
    ".yml": SpecFormat.YAML,
    ".json": SpecFormat.JSON,
}

# Максимальная вложенность документа
MAX_DEPTH = 100


def detect_format(path: Path) -> SpecFormat:
    """
    Определение формата по расширению файла.

    Неизвестное или отсутствующее расширение читается как YAML, а не
    считается ошибкой. Расширение, которое не является текстом, - ошибка.
    """
    extension = path.suffix
    try:
        extension.encode("utf-8")
    except UnicodeEncodeError:
        raise UnsupportedExtensionError(path, extension)

    spec_format = EXTENSION_FORMATS.get(extension.lower())
    if spec_format is None:
        if extension:
            logger.warning(
                "%s: неизвестное расширение %r, читаем как YAML", path, extension
            )
        spec_format = SpecFormat.YAML

    return spec_format


def load_raw(path: Union[str, Path]) -> RawDocument:
    """Чтение файла с диска без разбора содержимого"""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            content = f.read()
    except OSError as exc:
        raise SpecFileNotFoundError(path, exc) from exc

    return RawDocument(content=content, path=path, format=detect_format(path))


def _stringify_keys(value: Any, depth: int = 0) -> Any:
    """
    YAML допускает нестроковые ключи (200:), приводим к модели данных JSON.

    Заодно ограничивает вложенность: якорь YAML, ссылающийся на себя,
    дает бесконечно вложенную структуру.
    """
    if depth > MAX_DEPTH:
        raise ValueError(f"вложенность документа больше {MAX_DEPTH} уровней")
    if isinstance(value, dict):
        return {str(key): _stringify_keys(item, depth + 1) for key, item in value.items()}
    if isinstance(value, list):
        return [_stringify_keys(item, depth + 1) for item in value]
    return value


def _detect_version(data: Dict[str, Any]) -> SchemaVersion:
    if "swagger" in data:
        if str(data["swagger"]).startswith("2"):
            return SchemaVersion.SWAGGER_2_0
        raise ValueError(f"неподдерживаемая версия swagger: {data['swagger']}")

    if "openapi" in data:
        version = str(data["openapi"])
        if version.startswith("3.0"):
            return SchemaVersion.OPENAPI_3_0
        if version.startswith("3.1"):
            return SchemaVersion.OPENAPI_3_1
        raise ValueError(f"неподдерживаемая версия openapi: {version}")

    raise ValueError("в документе нет поля 'swagger' или 'openapi'")


def deserialize(raw: RawDocument) -> VersionedDocument:
    """Разбор содержимого в версионированный документ"""
    try:
        text = raw.content.decode("utf-8")
        if raw.format == SpecFormat.JSON:
            data = _stringify_keys(json.loads(text))
        else:
            data = _stringify_keys(yaml.safe_load(text))
    except (ValueError, yaml.YAMLError) as exc:
        raise SpecParseError(raw.path, raw.format.value, str(exc), exc) from exc
    except RecursionError as exc:
        # Вложенность, на которой парсер исчерпал стек раньше проверки глубины
        raise SpecParseError(
            raw.path, raw.format.value, "слишком глубокая или циклическая структура", exc
        ) from exc

    if not isinstance(data, dict):
        raise SpecParseError(
            raw.path,
            raw.format.value,
            f"ожидался объект верхнего уровня, получено {type(data).__name__}",
        )

    try:
        version = _detect_version(data)
    except ValueError as exc:
        raise SpecParseError(raw.path, raw.format.value, str(exc), exc) from exc

    logger.debug("%s: формат %s, версия схемы %s", raw.path, raw.format.value, version.value)
    return versioned_document_adapter.validate_python(
        {"version": version.value, "content": data}
    )


def read_spec(path: Union[str, Path]) -> VersionedDocument:
    """Чтение спецификации: файл -> версионированный документ"""
    return deserialize(load_raw(path))
