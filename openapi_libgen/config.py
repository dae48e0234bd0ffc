"""
Конфигурация проекта генерации (libgen.toml)
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

import toml

from .errors import ConfigFileError
from .internal.types.config import Flag, GenerateInputs, TargetLanguage

CONFIG_FILE_NAME = "libgen.toml"


@dataclass
class LibgenConfig:
    """Значения по умолчанию для запуска генератора"""

    name: Optional[str] = None
    spec: Optional[str] = None
    language: str = TargetLanguage.PYTHON.value
    output_dir: Optional[str] = None
    derives: List[str] = field(default_factory=list)
    examples: bool = True
    flags: List[str] = field(default_factory=list)

    @classmethod
    def from_file(
        cls, config_path: str = CONFIG_FILE_NAME, search_dir: str = None
    ) -> Optional["LibgenConfig"]:
        """Загрузка конфигурации из файла"""
        # Если указана директория для поиска, ищем конфиг там
        if search_dir and os.path.isdir(search_dir):
            config_in_dir = os.path.join(search_dir, CONFIG_FILE_NAME)
            if os.path.exists(config_in_dir):
                config_path = config_in_dir

        if not os.path.exists(config_path):
            return None

        try:
            config_data = toml.load(config_path)
        except (OSError, toml.TomlDecodeError) as exc:
            raise ConfigFileError(config_path, exc) from exc

        try:
            return cls(
                name=config_data.get("name"),
                spec=config_data.get("spec"),
                language=str(config_data.get("language", TargetLanguage.PYTHON.value)),
                output_dir=config_data.get("output_dir"),
                derives=[str(d) for d in config_data.get("derives", [])],
                examples=bool(config_data.get("examples", True)),
                flags=[str(f) for f in config_data.get("flags", [])],
            )
        except TypeError as exc:
            raise ConfigFileError(config_path, exc) from exc

    def save_to_file(self, config_path: str = CONFIG_FILE_NAME) -> None:
        """Сохранение конфигурации в файл"""
        config_data = {
            "language": self.language,
            "derives": self.derives,
            "examples": self.examples,
            "flags": self.flags,
        }
        # toml не умеет хранить None
        for key in ("name", "spec", "output_dir"):
            value = getattr(self, key)
            if value is not None:
                config_data[key] = value

        with open(config_path, "w", encoding="utf-8") as f:
            toml.dump(config_data, f)

    def merge_with_args(self, args) -> "LibgenConfig":
        """Объединение с аргументами командной строки"""
        return LibgenConfig(
            name=args.name or self.name,
            spec=args.spec or self.spec,
            language=args.lang or self.language,
            output_dir=args.output_dir or self.output_dir,
            derives=args.derive or self.derives,
            examples=self.examples if args.examples is None else args.examples,
            flags=args.config or self.flags,
        )

    def to_inputs(self) -> GenerateInputs:
        """Параметры запуска генерации; значения проверяются через enum"""
        return GenerateInputs(
            name=self.name,
            language=TargetLanguage(self.language),
            output_dir=self.output_dir,
            derives=list(self.derives),
            examples=self.examples,
            flags=[Flag(flag) for flag in self.flags],
        )
