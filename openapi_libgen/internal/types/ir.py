"""
Промежуточное представление API, которое получают генераторы языков
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class TypeKind(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    BINARY = "binary"
    ARRAY = "array"
    MAP = "map"
    MODEL = "model"
    ANY = "any"


class TypeRef(BaseModel):
    """Ссылка на тип: примитив, контейнер или именованная модель"""

    kind: TypeKind
    model: Optional[str] = None
    item: Optional["TypeRef"] = None
    nullable: bool = False

    @classmethod
    def primitive(cls, kind: TypeKind, nullable: bool = False) -> "TypeRef":
        return cls(kind=kind, nullable=nullable)

    @classmethod
    def reference(cls, name: str, nullable: bool = False) -> "TypeRef":
        return cls(kind=TypeKind.MODEL, model=name, nullable=nullable)

    @classmethod
    def array_of(cls, item: "TypeRef", nullable: bool = False) -> "TypeRef":
        return cls(kind=TypeKind.ARRAY, item=item, nullable=nullable)

    @classmethod
    def map_of(cls, item: "TypeRef", nullable: bool = False) -> "TypeRef":
        return cls(kind=TypeKind.MAP, item=item, nullable=nullable)

    def referenced_models(self) -> List[str]:
        if self.kind == TypeKind.MODEL and self.model:
            return [self.model]
        if self.item is not None:
            return self.item.referenced_models()
        return []


class RecordField(BaseModel):
    name: str
    type: TypeRef
    required: bool = False
    description: Optional[str] = None
    default: Any = None


class RecordSchema(BaseModel):
    kind: Literal["record"] = "record"
    name: str
    fields: List[RecordField] = []
    description: Optional[str] = None
    additional_properties: bool = False


class EnumSchema(BaseModel):
    kind: Literal["enum"] = "enum"
    name: str
    values: List[Union[str, int]] = []
    description: Optional[str] = None


class AliasSchema(BaseModel):
    kind: Literal["alias"] = "alias"
    name: str
    type: TypeRef
    description: Optional[str] = None


Schema = Annotated[
    Union[RecordSchema, EnumSchema, AliasSchema], Field(discriminator="kind")
]


class ParameterLocation(str, Enum):
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class OperationParameter(BaseModel):
    name: str
    location: ParameterLocation
    type: TypeRef
    required: bool = False
    description: Optional[str] = None


class RequestBody(BaseModel):
    media_type: str
    type: TypeRef
    required: bool = False
    description: Optional[str] = None


class Operation(BaseModel):
    name: str
    method: str
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    deprecated: bool = False
    parameters: List[OperationParameter] = []
    body: Optional[RequestBody] = None
    response: Optional[TypeRef] = None


class Server(BaseModel):
    url: str
    description: Optional[str] = None


class SecurityScheme(BaseModel):
    name: str
    type: str
    location: Optional[str] = None
    parameter_name: Optional[str] = None
    scheme: Optional[str] = None


class ApiSpec(BaseModel):
    """Описание API, независимое от синтаксиса и версии спецификации"""

    title: str = "API"
    version: str = ""
    description: Optional[str] = None
    servers: List[Server] = []
    schemas: Dict[str, Schema] = {}
    operations: List[Operation] = []
    security_schemes: List[SecurityScheme] = []

    def get_schema(self, name: str) -> Optional[Schema]:
        return self.schemas.get(name)


TypeRef.model_rebuild()
