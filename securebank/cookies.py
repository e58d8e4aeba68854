"""
Cookie Transport Module

The auth flow reads and writes the session cookie only through the
``CookieTransport`` interface, so it never branches on how the request or
response object exposes headers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response


@dataclass(frozen=True)
class CookieAttributes:
    """Attributes of a Set-Cookie header"""
    max_age: int
    path: str = "/"
    http_only: bool = True
    same_site: str = "Strict"
    secure: bool = False


def format_set_cookie(name: str, value: str, attributes: CookieAttributes) -> str:
    """Render a Set-Cookie header value"""
    parts = [f"{name}={value}", f"Path={attributes.path}"]
    if attributes.http_only:
        parts.append("HttpOnly")
    parts.append(f"SameSite={attributes.same_site}")
    if attributes.secure:
        parts.append("Secure")
    parts.append(f"Max-Age={attributes.max_age}")
    return "; ".join(parts)


def session_cookie_attributes(max_age: int) -> CookieAttributes:
    return CookieAttributes(max_age=max_age)


def cleared_cookie_attributes() -> CookieAttributes:
    return CookieAttributes(max_age=0)


class CookieTransport(ABC):
    """Read request cookies and emit response cookies"""

    @abstractmethod
    def get_cookie(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_cookie(self, name: str, value: str, attributes: CookieAttributes) -> None:
        pass


class CookieJar(CookieTransport):
    """In-process transport; records every Set-Cookie header it emits"""

    def __init__(self, cookies: Optional[Dict[str, str]] = None):
        self.cookies: Dict[str, str] = dict(cookies or {})
        self.set_cookies: List[Tuple[str, str, CookieAttributes]] = []

    def get_cookie(self, name: str) -> Optional[str]:
        return self.cookies.get(name) or None

    def set_cookie(self, name: str, value: str, attributes: CookieAttributes) -> None:
        self.set_cookies.append((name, value, attributes))
        if attributes.max_age > 0 and value:
            self.cookies[name] = value
        else:
            self.cookies.pop(name, None)

    @property
    def headers(self) -> List[str]:
        """Set-Cookie header values in emission order"""
        return [format_set_cookie(name, value, attributes)
                for name, value, attributes in self.set_cookies]


class StarletteCookieTransport(CookieTransport):
    """Transport over a FastAPI/Starlette request and response pair"""

    def __init__(self, request: "Request", response: "Response"):
        self.request = request
        self.response = response

    def get_cookie(self, name: str) -> Optional[str]:
        return self.request.cookies.get(name) or None

    def set_cookie(self, name: str, value: str, attributes: CookieAttributes) -> None:
        self.response.headers.append("set-cookie", format_set_cookie(name, value, attributes))
