from abc import ABC, abstractmethod

from ..types.config import GenerationConfig, TargetLanguage
from ..types.ir import ApiSpec


class Backend(ABC):
    """Генератор библиотеки для одного целевого языка"""

    language: TargetLanguage

    @abstractmethod
    def generate(self, spec: ApiSpec, config: GenerationConfig) -> None:
        """Записывает дерево исходников в config.dest или бросает GenerationError"""
