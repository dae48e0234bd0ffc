"""
Выбор генератора по целевому языку
"""

import logging
from typing import Dict, Iterator, List, Optional

from ...errors import GenerationError
from ..types.config import GenerationConfig, TargetLanguage
from ..types.ir import ApiSpec
from .base import Backend
from .python_generator import PythonClientGenerator

logger = logging.getLogger(__name__)


class BackendRegistry:
    """Соответствие язык -> генератор; у каждого языка ровно один генератор"""

    def __init__(self):
        self._backends: Dict[TargetLanguage, Backend] = {}

    def register(self, backend: Backend) -> Backend:
        language = TargetLanguage(backend.language)
        if language in self._backends:
            raise ValueError(f"Генератор для {language.value} уже зарегистрирован")

        self._backends[language] = backend
        return backend

    def get(self, language: TargetLanguage) -> Backend:
        language = TargetLanguage(language)
        if language not in self._backends:
            raise GenerationError(language, "генератор не зарегистрирован")
        return self._backends[language]

    def missing(self) -> List[TargetLanguage]:
        return [language for language in TargetLanguage if language not in self._backends]

    def verify(self) -> "BackendRegistry":
        """Проверка, что каждому языку из TargetLanguage назначен генератор"""
        missing = self.missing()
        if missing:
            raise RuntimeError(
                "Нет генератора для языков: "
                + ", ".join(language.value for language in missing)
            )
        return self

    def __contains__(self, language) -> bool:
        return language in self._backends

    def __iter__(self) -> Iterator[TargetLanguage]:
        return iter(self._backends)

    def __len__(self) -> int:
        return len(self._backends)


def create_default_registry() -> BackendRegistry:
    """Реестр встроенных генераторов; новый язык добавляется сюда"""
    registry = BackendRegistry()
    registry.register(PythonClientGenerator())
    return registry.verify()


# Проверяется при импорте: язык без генератора не доживет до вызова dispatch
default_registry = create_default_registry()


def dispatch(
    language: TargetLanguage,
    spec: ApiSpec,
    config: GenerationConfig,
    registry: Optional[BackendRegistry] = None,
) -> None:
    """Передает IR и конфигурацию генератору выбранного языка"""
    if registry is None:
        registry = default_registry

    backend = registry.get(language)
    logger.info("Генерация библиотеки %s: %s", config.name, backend.language.value)
    backend.generate(spec, config)
