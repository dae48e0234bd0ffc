from .config import LibgenConfig
from .errors import (
    ConfigFileError,
    ExtractionError,
    GenerationError,
    LibgenError,
    SpecFileNotFoundError,
    SpecParseError,
    UnsupportedExtensionError,
)
from .generator import LibraryGenerator, generate
from .internal.types.config import Flag, GenerateInputs, GenerationConfig, TargetLanguage

__all__ = [
    "ConfigFileError",
    "ExtractionError",
    "Flag",
    "GenerateInputs",
    "GenerationConfig",
    "GenerationError",
    "LibgenConfig",
    "LibgenError",
    "LibraryGenerator",
    "SpecFileNotFoundError",
    "SpecParseError",
    "TargetLanguage",
    "UnsupportedExtensionError",
    "generate",
]
