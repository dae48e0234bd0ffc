"""Утилиты для работы с именами сервисов, моделей и параметров"""

import keyword
import re
from typing import List


def _split_words(name: str) -> List[str]:
    """Разбивает имя на слова по разделителям и границам camelCase"""
    # Любые спецсимволы считаем разделителями
    name = re.sub(r"[^a-zA-Z0-9]+", "_", name)

    # HTTPValidationError -> HTTP_Validation_Error
    name = re.sub("([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    # userId -> user_Id, v2Api -> v2_Api
    name = re.sub("([a-z0-9])([A-Z])", r"\1_\2", name)

    return [part for part in name.split("_") if part]


def to_snake_case(name: str) -> str:
    """
    Преобразует имя в snake_case.

    Examples:
        >>> to_snake_case("HTTPValidationError")
        'http_validation_error'
        >>> to_snake_case("my-service")
        'my_service'
    """
    return "_".join(word.lower() for word in _split_words(name))


def to_pascal_case(name: str) -> str:
    """
    Преобразует имя в PascalCase. Детерминировано: одно и то же имя
    всегда дает один и тот же результат, аббревиатуры не сохраняются.

    Examples:
        >>> to_pascal_case("my_api")
        'MyApi'
        >>> to_pascal_case("MyAPI")
        'MyApi'
    """
    return "".join(word[0].upper() + word[1:].lower() for word in _split_words(name))


def to_identifier(name: str) -> str:
    """Делает из произвольного имени поля корректный идентификатор Python"""
    identifier = to_snake_case(name) or "field"

    if identifier[0].isdigit():
        identifier = f"_{identifier}"

    if keyword.iskeyword(identifier) or identifier in ("self", "client"):
        identifier = f"{identifier}_"

    return identifier
