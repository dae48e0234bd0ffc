class Templates:
    """Шаблоны для генерации файлов Python-библиотеки"""

    common = """import json
import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from aiohttp import ClientError, ClientSession, ClientTimeout
from pydantic import BaseModel, TypeAdapter

logger = logging.getLogger(__name__)


class SendRequestError(Exception):
    def __init__(self, message, path, status_code, response_data=None):
        self.message = message
        self.path = path
        self.status_code = status_code
        self.response_data = response_data
        super().__init__(f"[{{status_code}}] {{path}}: {{message}}")


def dump(value: Any) -> Any:
    \"\"\"Сериализация моделей и коллекций моделей в JSON-совместимые значения\"\"\"
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [dump(item) for item in value]
    if isinstance(value, dict):
        return {{key: dump(item) for key, item in value.items()}}
    return value


def drop_none(values: Mapping[str, Any]) -> Dict[str, Any]:
    return {{key: value for key, value in values.items() if value is not None}}


class BaseClient:
    \"\"\"HTTP клиент на базе aiohttp\"\"\"

    def __init__(
        self,
        base_url: str = {base_url},
        headers: Optional[Dict[str, str]] = None,
        timeout: int = 30,
    ):
        self.base_url = base_url.rstrip("/")
        self.headers: Dict[str, str] = dict(headers or {{}})
        self._timeout = ClientTimeout(total=timeout)
        self._session: Optional[ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    def set_auth_token(self, token: str):
        \"\"\"Установка Bearer токена авторизации\"\"\"
        self.headers["Authorization"] = f"Bearer {{token}}"
        return self

    async def _ensure_session(self) -> ClientSession:
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=self._timeout)
        return self._session

    async def close(self):
        \"\"\"Закрытие клиента и освобождение ресурсов\"\"\"
        if self._session and not self._session.closed:
            await self._session.close()

    @staticmethod
    def _url(template: str, path_params: Mapping[str, Any]) -> str:
        for name, value in path_params.items():
            template = template.replace(
                "{{" + name + "}}", quote(str(dump(value)), safe="")
            )
        return template

    @staticmethod
    def _query_value(value: Any) -> Any:
        value = dump(value)
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return value
        return json.dumps(value)

    def _query(self, params: Mapping[str, Any]) -> List[Tuple[str, Any]]:
        items = []
        for key, value in params.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            items.extend((key, self._query_value(item)) for item in values)
        return items

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None,
        cookies: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        form_body: Any = None,
        response_type: Any = None,
    ) -> Any:
        session = await self._ensure_session()
        request_headers = dict(self.headers)
        request_headers.update(
            (key, str(self._query_value(value))) for key, value in (headers or {{}}).items()
        )

        logger.debug("%s %s", method, path)
        try:
            async with session.request(
                method,
                self.base_url + path,
                params=self._query(params or {{}}),
                headers=request_headers,
                cookies={{k: str(dump(v)) for k, v in (cookies or {{}}).items()}},
                json=dump(json_body) if json_body is not None else None,
                data=dump(form_body) if form_body is not None else None,
            ) as response:
                if response.status >= 400:
                    raise SendRequestError(
                        await response.text(),
                        path=path,
                        status_code=response.status,
                    )
                if response_type is None or response.status == 204:
                    return None
                if response.content_type.endswith("json"):
                    data = await response.json()
                else:
                    data = await response.read()
        except ClientError as exc:
            raise SendRequestError(str(exc), path=path, status_code=503) from exc

        return TypeAdapter(response_type).validate_python(data)
"""

    readme = """# {name}

Клиент для {title} (версия API: {version}).

```python
import asyncio

from {package_name} import {client_name}


async def main():
    async with {client_name}("{base_url}") as client:
        ...


asyncio.run(main())
```
"""

    example = """import asyncio

from {package_name} import {client_name}
from {package_name} import models  # noqa: F401


async def main():
    async with {client_name}() as client:
        response = await client.{operation}({arguments})
        print(response)


if __name__ == "__main__":
    asyncio.run(main())
"""


templates = Templates()
