"""
Exchange Connectors - Endpoint Tables.

============================================================
PURPOSE
============================================================
Declarative REST surface of a connector.

Each connector lists ENDPOINTS as logical name → Endpoint. At init the
table is bound to the connector, producing ApiRoutes: a read-only
mapping of logical name → awaitable BoundEndpoint.

    markets = await self.api["markets"]({"category": "crypto"})

Path templates use {placeholder} substitution; substituted params are
removed from the remaining query/body params.

============================================================
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, Optional, Tuple


_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


class Access(Enum):
    """Authentication scope of an endpoint."""

    PUBLIC = "public"
    PRIVATE = "private"


# ============================================================
# ENDPOINT
# ============================================================

@dataclass(frozen=True)
class Endpoint:
    """One REST operation."""

    access: str
    """public or private."""

    method: str
    """HTTP verb."""

    path: str
    """Path template, relative to the connector's API root."""

    @classmethod
    def public(cls, method: str, path: str) -> "Endpoint":
        return cls(Access.PUBLIC.value, method, path)

    @classmethod
    def private(cls, method: str, path: str) -> "Endpoint":
        return cls(Access.PRIVATE.value, method, path)

    @property
    def is_private(self) -> bool:
        return self.access == Access.PRIVATE.value


def extract_params(path: str) -> List[str]:
    """Placeholder names in a template, in order."""
    return _PLACEHOLDER.findall(path)


def implode_params(path: str, params: Mapping[str, Any]) -> str:
    """Substitute {placeholder} values; unknown placeholders stay literal."""
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in params and params[name] is not None:
            return str(params[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, path)


def split_path_params(path: str, params: Optional[Mapping[str, Any]]) -> Tuple[str, Dict[str, Any]]:
    """
    Implode the template and return the unused params.

    Returns:
        (path, remaining_params)
    """
    params = dict(params or {})
    names = extract_params(path)
    resolved = implode_params(path, params)
    remaining = {key: value for key, value in params.items() if key not in names}
    return resolved, remaining


# ============================================================
# BINDING
# ============================================================

RequestFn = Callable[[str, str, str, Dict[str, Any]], Awaitable[Any]]


class BoundEndpoint:
    """An Endpoint bound to a connector's request pipeline."""

    def __init__(self, name: str, endpoint: Endpoint, request: RequestFn):
        self.name = name
        self.endpoint = endpoint
        self._request = request

    async def __call__(self, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._request(
            self.endpoint.path,
            self.endpoint.access,
            self.endpoint.method,
            dict(params or {}),
        )

    def __repr__(self) -> str:
        return (
            f"BoundEndpoint({self.name!r}, {self.endpoint.access} "
            f"{self.endpoint.method} {self.endpoint.path})"
        )


class ApiRoutes(Mapping[str, BoundEndpoint]):
    """Logical name → BoundEndpoint, fixed at construction."""

    def __init__(self, endpoints: Mapping[str, Endpoint], request: RequestFn):
        self._routes: Dict[str, BoundEndpoint] = {
            name: BoundEndpoint(name, endpoint, request)
            for name, endpoint in endpoints.items()
        }

    def __getitem__(self, name: str) -> BoundEndpoint:
        return self._routes[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._routes)

    def __len__(self) -> int:
        return len(self._routes)

    def public(self) -> List[str]:
        return [name for name, bound in self._routes.items() if not bound.endpoint.is_private]

    def private(self) -> List[str]:
        return [name for name, bound in self._routes.items() if bound.endpoint.is_private]
