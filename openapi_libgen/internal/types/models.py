"""
Модель генерируемого кода: проект, файлы, классы, функции, параметры
"""

import textwrap
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, field_validator

INDENT = "    "


def indent(text: str) -> str:
    return textwrap.indent(text, INDENT)


def docstring(text: Optional[str]) -> str:
    """Многострочный docstring с экранированием кавычек"""
    if not text:
        return ""
    text = text.strip().replace("\\", "\\\\")
    # Кавычка в конце слилась бы с закрывающими кавычками
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    text = text.replace('"""', '\\"\\"\\"')
    if "\n" in text:
        return f'"""\n{text}\n"""'
    return f'"""{text}"""'


class Variable(BaseModel):
    """Выражение типа или значения: `int`, `Optional[int]`, `Dict[str, Any]`"""

    value: List[Union["Variable", str]] = []
    wrap_name: Optional[str] = None

    @field_validator("value", mode="before")
    def value_check(cls, value):
        if not isinstance(value, list):
            return [value]
        return value

    def __str__(self):
        joined = ", ".join(str(item) for item in self.value)

        if self.wrap_name is None:
            return joined

        return f"{self.wrap_name}[{joined}]" if joined else "Any"


class Parameter(BaseModel):
    name: str

    default: Optional[Variable] = None
    var_type: Optional[Variable] = None

    order: int = 0

    def set_default(self, default: Union[str, Variable], **kwargs) -> "Parameter":
        if isinstance(default, str):
            default = Variable(value=default, **kwargs)

        self.default = default
        return self

    def set_type(self, var_type: Union[str, Variable], **kwargs) -> "Parameter":
        if isinstance(var_type, str):
            var_type = Variable(value=var_type, **kwargs)

        self.var_type = var_type
        return self

    def __str__(self):
        return (
            self.name
            + (f": {self.var_type}" if self.var_type else "")
            + (f" = {self.default}" if self.default else "")
        )


class CodeBlock(BaseModel):
    order: int = 0
    code: str = "pass"

    def __str__(self):
        return self.code.replace("\t", INDENT)


class Function(BaseModel):
    name: str
    parameters: List[Parameter] = []
    response: str = "None"

    async_def: bool = False
    decorators: List[str] = []

    description: Optional[str] = None

    code: CodeBlock = CodeBlock(code="pass")
    order: int = 0

    def __str__(self) -> str:
        if len(self.parameters) > 2:
            signature = (
                "(\n" + "".join(f"{INDENT}{p},\n" for p in self.parameters) + ")"
            )
        else:
            signature = "(" + ", ".join(map(str, self.parameters)) + ")"

        lines = list(self.decorators)
        lines.append(
            f"{'async ' if self.async_def else ''}def {self.name}{signature}"
            f" -> {self.response}:"
        )
        body = "\n".join(filter(bool, [docstring(self.description), str(self.code)]))
        return "\n".join(lines) + "\n" + indent(body)

    def set_code_block(self, code_block: Union[CodeBlock, str]) -> "Function":
        if isinstance(code_block, str):
            code_block = CodeBlock(code=code_block)

        self.code = code_block
        return self


class Class(BaseModel):
    name: str

    functions: List[Function] = []
    code_blocks: List[CodeBlock] = []
    parameters: List[Parameter] = []

    inherits: List[str] = []
    description: Optional[str] = None

    order: int = 0

    def __str__(self) -> str:
        header = (
            f"class {self.name}"
            + (f"({', '.join(self.inherits)})" if self.inherits else "")
            + ":"
        )

        sections = []
        if self.description:
            sections.append(docstring(self.description))
        if self.parameters:
            sections.append("\n".join(map(str, self.parameters)))
        members = sorted(
            self.code_blocks + self.functions, key=lambda x: x.order, reverse=True
        )
        sections.extend(str(member) for member in members)

        return header + "\n" + indent("\n\n".join(sections) or "pass")

    def add_function(self, function: Union[Function, str], **kwargs) -> Function:
        if isinstance(function, str):
            function = Function(name=function, **kwargs)

        self.functions.append(function)
        return function

    def add_code_block(self, code_block: Union[CodeBlock, str], **kwargs) -> "Class":
        if isinstance(code_block, str):
            code_block = CodeBlock(code=code_block, **kwargs)

        self.code_blocks.append(code_block)
        return self


class CodeFile(BaseModel):
    file_name: str

    imports: List[str] = []
    functions: List[Function] = []
    classes: List[Class] = []
    code_blocks: List[CodeBlock] = []

    def __str__(self):
        members = sorted(
            self.code_blocks + self.functions + self.classes,
            key=lambda x: x.order,
            reverse=True,
        )
        parts = []
        if self.imports:
            parts.append("\n".join(self.imports))
        parts.extend(str(member) for member in members)

        return ("\n\n\n".join(parts) + "\n").replace("\t", INDENT)

    def add_import(self, line: str) -> "CodeFile":
        if line not in self.imports:
            self.imports.append(line)
        return self

    def add_function(self, function: Union[Function, str], **kwargs) -> Function:
        if isinstance(function, str):
            function = Function(name=function, **kwargs)

        self.functions.append(function)
        return function

    def add_class(self, cls: Union[Class, str], **kwargs) -> Class:
        if isinstance(cls, str):
            cls = Class(name=cls, **kwargs)

        self.classes.append(cls)
        return cls

    def add_code_block(
        self, code_block: Union[CodeBlock, str], **kwargs
    ) -> "CodeFile":
        if isinstance(code_block, str):
            code_block = CodeBlock(code=code_block, **kwargs)

        self.code_blocks.append(code_block)
        return self

    def get_class(self, name: str) -> Optional[Class]:
        for cls in self.classes:
            if cls.name == name:
                return cls
        return None


class Project(BaseModel):
    name: str
    files: List[CodeFile] = []

    def add_file(self, file_name: Union[CodeFile, str], **kwargs) -> CodeFile:
        if isinstance(file_name, str):
            code_file = CodeFile(file_name=file_name, **kwargs)
        else:
            code_file = file_name

        self.files.append(code_file)
        return code_file

    def get_file(self, file_name: str) -> Optional[CodeFile]:
        for code_file in self.files:
            if code_file.file_name == file_name:
                return code_file
        return None

    def write(self, target_path: Union[str, Path]) -> List[Path]:
        """Сохранение файлов проекта на диск"""
        written = []
        for code_file in self.files:
            path = Path(target_path) / code_file.file_name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(str(code_file), encoding="utf-8")
            written.append(path)
        return written


Variable.model_rebuild()
