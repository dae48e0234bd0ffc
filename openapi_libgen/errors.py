"""
Ошибки пайплайна генерации библиотек
"""

from pathlib import Path
from typing import Optional, Union


class LibgenError(Exception):
    """Базовая ошибка пайплайна: знает, на каком этапе произошел сбой"""

    stage: str = "pipeline"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(f"[{self.stage}] {message}")


class SpecFileNotFoundError(LibgenError):
    stage = "read"

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.path = str(path)
        super().__init__(f"{self.path}: файл спецификации не найден", cause)


class SpecParseError(LibgenError):
    stage = "read"

    def __init__(
        self,
        path: Union[str, Path],
        fmt: str,
        reason: str,
        cause: Optional[BaseException] = None,
    ):
        self.path = str(path)
        self.format = fmt
        super().__init__(f"{self.path}: ошибка разбора {fmt}: {reason}", cause)


class UnsupportedExtensionError(LibgenError):
    """Расширение файла есть, но не является текстом - проблема окружения, а не спецификации"""

    stage = "read"

    def __init__(self, path: Union[str, Path], extension: str):
        self.path = str(path)
        self.extension = extension
        super().__init__(
            f"{self.path}: расширение {extension!r} не является корректным UTF-8 текстом"
        )


class ExtractionError(LibgenError):
    stage = "extract"


class GenerationError(LibgenError):
    stage = "generate"

    def __init__(
        self, language: str, message: str, cause: Optional[BaseException] = None
    ):
        self.language = getattr(language, "value", language)
        super().__init__(f"{self.language}: {message}", cause)


class ConfigFileError(LibgenError):
    stage = "config"

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None):
        self.path = str(path)
        super().__init__(f"{self.path}: некорректный файл конфигурации: {cause}", cause)
