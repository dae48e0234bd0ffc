"""
Тесты пайплайна генерации
"""

import json

import pytest

from openapi_libgen.errors import (
    ExtractionError,
    SpecFileNotFoundError,
    SpecParseError,
)
from openapi_libgen.generator import LibraryGenerator, generate
from openapi_libgen.internal.generator.base import Backend
from openapi_libgen.internal.generator.dispatch import BackendRegistry
from openapi_libgen.internal.parser.extractor import extract_spec
from openapi_libgen.internal.types.config import GenerateInputs, TargetLanguage

SIMPLE_SPEC = """
swagger: "2.0"
info:
  title: Test API
  version: 1.0.0
host: localhost:8000
paths:
  /users:
    get:
      operationId: getUsers
      responses:
        200:
          description: Success
          schema:
            type: array
            items:
              $ref: "#/definitions/User"
definitions:
  User:
    type: object
    required: [id]
    properties:
      id:
        type: integer
      name:
        type: string
"""


class RecordingBackend(Backend):
    language = TargetLanguage.PYTHON

    def __init__(self):
        self.calls = []

    def generate(self, spec, config):
        self.calls.append((spec, config))


class RecordingExtractor:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, document):
        self.calls.append(document)
        if self.error:
            raise self.error
        return extract_spec(document)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def registry(backend):
    registry = BackendRegistry()
    registry.register(backend)
    return registry


class TestPipeline:
    """Тесты последовательности этапов"""

    def test_simple_api_generation(self, tmp_path):
        """Тест генерации простого API"""
        spec_path = tmp_path / "api.yaml"
        spec_path.write_text(SIMPLE_SPEC, encoding="utf-8")
        out = tmp_path / "out"

        config = generate(spec_path, GenerateInputs(name="test_api", output_dir=out))

        assert config.name == "TestApi"
        assert (out / "test_api" / "client.py").is_file()
        models = (out / "test_api" / "models.py").read_text(encoding="utf-8")
        assert "class User(BaseModel):" in models
        client = (out / "test_api" / "client.py").read_text(encoding="utf-8")
        assert "async def get_users(self) -> List[models.User]:" in client

    def test_stages_in_order(self, tmp_path, backend, registry):
        """Тест: IR и конфигурация доходят до генератора"""
        spec_path = tmp_path / "api.yaml"
        spec_path.write_text(SIMPLE_SPEC, encoding="utf-8")
        extractor = RecordingExtractor()

        generate(
            spec_path,
            GenerateInputs(name="my_api", output_dir=tmp_path, derives=["A", "A"]),
            extractor=extractor,
            registry=registry,
        )

        assert len(extractor.calls) == 1
        assert extractor.calls[0].openapi == "3.0.3"
        assert len(backend.calls) == 1
        spec, config = backend.calls[0]
        assert spec.title == "Test API"
        assert config.name == "MyApi"
        assert config.derives == ("A", "A")

    def test_parse_error_stops_pipeline(self, tmp_path, backend, registry):
        """Тест: ошибка разбора не доходит до извлечения и генерации"""
        spec_path = tmp_path / "api.json"
        spec_path.write_text('{"openapi": ', encoding="utf-8")
        extractor = RecordingExtractor()

        with pytest.raises(SpecParseError):
            generate(
                spec_path,
                GenerateInputs(name="api", output_dir=tmp_path),
                extractor=extractor,
                registry=registry,
            )

        assert extractor.calls == []
        assert backend.calls == []

    def test_missing_file(self, tmp_path, backend, registry):
        """Тест отсутствующего файла спецификации"""
        spec_path = tmp_path / "missing.yaml"
        extractor = RecordingExtractor()

        with pytest.raises(SpecFileNotFoundError) as exc_info:
            generate(
                spec_path,
                GenerateInputs(name="api"),
                extractor=extractor,
                registry=registry,
            )

        assert str(spec_path) in str(exc_info.value)
        assert extractor.calls == []
        assert backend.calls == []

    def test_extraction_error_propagates(self, tmp_path, backend, registry):
        """Тест: ошибка извлечения пробрасывается без изменений"""
        spec_path = tmp_path / "api.json"
        spec_path.write_text(
            json.dumps({"openapi": "3.0.0", "info": {}, "paths": {}}), encoding="utf-8"
        )
        error = ExtractionError("boom")

        with pytest.raises(ExtractionError) as exc_info:
            generate(
                spec_path,
                GenerateInputs(name="api", output_dir=tmp_path),
                extractor=RecordingExtractor(error=error),
                registry=registry,
            )

        assert exc_info.value is error
        assert backend.calls == []


class TestLibraryGenerator:
    """Тесты объектного интерфейса"""

    def test_generate(self, tmp_path, backend, registry):
        """Тест генерации через LibraryGenerator"""
        spec_path = tmp_path / "api.yml"
        spec_path.write_text(SIMPLE_SPEC, encoding="utf-8")

        generator = LibraryGenerator(
            str(spec_path), GenerateInputs(name="api", output_dir=tmp_path), registry
        )
        config = generator.generate()

        assert config.name == "Api"
        assert len(backend.calls) == 1
