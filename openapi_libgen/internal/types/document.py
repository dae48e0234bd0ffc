"""
Представления документа спецификации на разных этапах чтения
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

CANONICAL_OPENAPI_VERSION = "3.0.3"


class SpecFormat(str, Enum):
    YAML = "yaml"
    JSON = "json"


class SchemaVersion(str, Enum):
    SWAGGER_2_0 = "2.0"
    OPENAPI_3_0 = "3.0"
    OPENAPI_3_1 = "3.1"


@dataclass(frozen=True)
class RawDocument:
    """Сырое содержимое файла с определенным по расширению форматом"""

    content: bytes
    path: Path
    format: SpecFormat


class _VersionedBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: Dict[str, Any]


class SwaggerV2Document(_VersionedBase):
    version: Literal["2.0"] = "2.0"


class OpenApiV30Document(_VersionedBase):
    version: Literal["3.0"] = "3.0"


class OpenApiV31Document(_VersionedBase):
    version: Literal["3.1"] = "3.1"


VersionedDocument = Annotated[
    Union[SwaggerV2Document, OpenApiV30Document, OpenApiV31Document],
    Field(discriminator="version"),
]

versioned_document_adapter = TypeAdapter(VersionedDocument)


class CanonicalDocument(BaseModel):
    """Спецификация в единственной поддерживаемой дальше версии (OpenAPI 3.0)"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    openapi: str = CANONICAL_OPENAPI_VERSION
    info: Dict[str, Any] = {}
    servers: List[Dict[str, Any]] = []
    paths: Dict[str, Any] = {}
    components: Dict[str, Any] = {}
    security: List[Dict[str, Any]] = []
    tags: List[Dict[str, Any]] = []
    external_docs: Optional[Dict[str, Any]] = Field(default=None, alias="externalDocs")
    extensions: Dict[str, Any] = {}

    def to_dict(self) -> Dict[str, Any]:
        """Обычный OpenAPI словарь, пригодный для сериализации"""
        document = {
            "openapi": self.openapi,
            "info": self.info,
            "paths": self.paths,
        }
        if self.servers:
            document["servers"] = self.servers
        if self.components:
            document["components"] = self.components
        if self.security:
            document["security"] = self.security
        if self.tags:
            document["tags"] = self.tags
        if self.external_docs is not None:
            document["externalDocs"] = self.external_docs
        document.update(self.extensions)
        return document


def wrap_canonical(document: CanonicalDocument) -> OpenApiV30Document:
    """Заворачивает каноничный документ обратно в версионированное представление"""
    return OpenApiV30Document(content=document.to_dict())
