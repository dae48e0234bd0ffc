"""
Главный модуль генератора - чистый интерфейс
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from .internal.generator.dispatch import BackendRegistry, dispatch
from .internal.parser.extractor import extract_spec
from .internal.parser.normalizer import upgrade
from .internal.parser.reader import read_spec
from .internal.types.config import GenerateInputs, GenerationConfig, build_config
from .internal.types.document import CanonicalDocument
from .internal.types.ir import ApiSpec

logger = logging.getLogger(__name__)

Extractor = Callable[[CanonicalDocument], ApiSpec]


def generate(
    spec_path: Union[str, Path],
    inputs: GenerateInputs,
    *,
    extractor: Extractor = extract_spec,
    registry: Optional[BackendRegistry] = None,
) -> GenerationConfig:
    """
    Полный проход: чтение -> нормализация -> извлечение -> конфигурация -> генерация

    Ошибка любого этапа пробрасывается как есть, следующие этапы не запускаются.
    """
    spec_path = Path(spec_path)

    document = read_spec(spec_path)
    logger.debug("Прочитан %s (версия %s)", spec_path, document.version)

    canonical = upgrade(document)
    logger.debug("Документ приведен к OpenAPI %s", canonical.openapi)

    spec = extractor(canonical)
    logger.info(
        "Извлечено %d схем и %d операций", len(spec.schemas), len(spec.operations)
    )

    config = build_config(inputs)
    logger.debug("Конфигурация генерации: %s", config)

    dispatch(config.language, spec, config, registry)
    logger.info("Библиотека %s сгенерирована в %s", config.name, config.dest)
    return config


class LibraryGenerator:
    """Чистый интерфейс для генерации клиентских библиотек"""

    def __init__(
        self,
        spec_path: Union[str, Path],
        inputs: GenerateInputs,
        registry: Optional[BackendRegistry] = None,
    ):
        self.spec_path = Path(spec_path)
        self.inputs = inputs
        self.registry = registry

    def generate(self) -> GenerationConfig:
        """Генерация библиотеки"""
        return generate(self.spec_path, self.inputs, registry=self.registry)
