import argparse
import logging
import os
import sys
from typing import List, Optional

from openapi_libgen.config import CONFIG_FILE_NAME, LibgenConfig
from openapi_libgen.errors import LibgenError
from openapi_libgen.generator import LibraryGenerator
from openapi_libgen.internal.types.config import Flag, TargetLanguage


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Генератор клиентских библиотек из OpenAPI/Swagger спецификаций",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры использования:
  %(prog)s petstore petstore.yaml                 # Библиотека в текущей директории
  %(prog)s petstore petstore.json -o ./client     # В указанную директорию
  %(prog)s petstore spec.yaml -c fake --derive mixins.Auditable
  %(prog)s --init-config petstore spec.yaml       # Сохранить libgen.toml
  %(prog)s                                        # Все параметры из libgen.toml
        """,
    )

    parser.add_argument("name", nargs="?", help="Название библиотеки (my_api -> MyApi)")
    parser.add_argument("spec", nargs="?", help="Путь к файлу спецификации (.yaml/.yml/.json)")
    parser.add_argument(
        "-l",
        "--lang",
        choices=[language.value for language in TargetLanguage],
        help="Целевой язык (по умолчанию python)",
    )
    parser.add_argument("-o", "--output-dir", help="Директория для сгенерированных файлов")
    parser.add_argument(
        "-c",
        "--config",
        action="append",
        choices=[flag.value for flag in Flag],
        metavar="FLAG",
        help="Дополнительная опция генерации: "
        + ", ".join(flag.value for flag in Flag),
    )
    parser.add_argument(
        "--derive",
        action="append",
        metavar="NAME",
        help="Дополнительный базовый класс моделей (можно повторять)",
    )
    parser.add_argument(
        "--examples",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Генерировать примеры вызовов (по умолчанию да)",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help=f"Сохранить параметры в {CONFIG_FILE_NAME} и выйти",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Подробный лог")
    return parser


def _run(args: argparse.Namespace) -> None:
    config = LibgenConfig.from_file(search_dir=os.getcwd())
    if config:
        print(f"📄 Используется {CONFIG_FILE_NAME}")
    config = (config or LibgenConfig()).merge_with_args(args)

    if args.init_config:
        config.save_to_file(CONFIG_FILE_NAME)
        print(f"💾 Конфиг сохранен в {CONFIG_FILE_NAME}")
        return

    if not config.name or not config.spec:
        raise ValueError(f"Не указаны название и спецификация (аргументы или {CONFIG_FILE_NAME})")

    print(f"🚀 Генерация {config.name} из {config.spec}")
    result = LibraryGenerator(config.spec, config.to_inputs()).generate()

    print("✅ Генерация завершена успешно!")
    print(f"📦 Библиотека создана в: {os.path.abspath(result.dest)}")


def generate(argv: Optional[List[str]] = None):
    """Точка входа командной строки"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        _run(args)
    except (LibgenError, ValueError) as e:
        print(f"❌ Ошибка генерации: {e}")
        sys.exit(1)


if __name__ == "__main__":
    generate()
