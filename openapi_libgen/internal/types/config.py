"""
Параметры запуска и неизменяемая конфигурация генерации
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from ..utils import to_pascal_case, to_snake_case


class TargetLanguage(str, Enum):
    """Языки, для которых зарегистрирован генератор"""

    PYTHON = "python"


class Flag(str, Enum):
    # Метаданные ORM-маппинга (__tablename__, from_attributes) на моделях
    ORMLITE = "ormlite"
    # Фабрика dummy() с заглушками значений на моделях
    FAKE = "fake"


@dataclass
class GenerateInputs:
    """Значения, пришедшие из командной строки или конфиг-файла"""

    name: str
    language: TargetLanguage = TargetLanguage.PYTHON
    output_dir: Optional[Union[str, Path]] = None
    derives: List[str] = field(default_factory=list)
    examples: bool = True
    flags: Iterable[Flag] = field(default_factory=list)


class GenerationConfig(BaseModel):
    """Конфигурация, одинаковая для любого генератора; после создания не меняется"""

    model_config = ConfigDict(frozen=True)

    name: str
    dest: Path
    derives: Tuple[str, ...] = ()
    build_examples: bool = True
    flags: FrozenSet[Flag] = frozenset()
    language: TargetLanguage = TargetLanguage.PYTHON

    @property
    def package_name(self) -> str:
        return to_snake_case(self.name)

    @property
    def ormlite(self) -> bool:
        return Flag.ORMLITE in self.flags

    @property
    def fake(self) -> bool:
        return Flag.FAKE in self.flags


def build_config(inputs: GenerateInputs) -> GenerationConfig:
    """Сборка конфигурации из параметров запуска; чистая функция"""
    dest = Path(inputs.output_dir) if inputs.output_dir else Path.cwd()

    return GenerationConfig(
        name=to_pascal_case(inputs.name),
        dest=dest,
        derives=tuple(inputs.derives),
        build_examples=inputs.examples,
        flags=frozenset(Flag(flag) for flag in inputs.flags),
        language=TargetLanguage(inputs.language),
    )
