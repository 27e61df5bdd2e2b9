"""Framework-neutral view of an inbound authentication request."""

from dataclasses import dataclass, field
from typing import Any

from starlette.requests import Request


@dataclass
class AuthRequest:
    """Method, query string and (form or JSON) body of a request.

    Apple delivers the redirect as a form submission when scopes are
    requested (`response_mode=form_post`), so the body may carry the same
    fields as the query string: code, state, id_token, user, error.
    """

    method: str = "GET"
    query: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] | None = None

    @property
    def params(self) -> dict[str, Any]:
        """Body fields overlaid with query fields (query wins)."""
        return {**(self.body or {}), **self.query}

    @classmethod
    async def from_starlette(cls, request: Request) -> "AuthRequest":
        """Build from a Starlette/FastAPI request.

        Args:
            request: Incoming request

        Returns:
            AuthRequest with the parsed body, or body=None when there is none
        """
        body: dict[str, Any] | None = None
        content_type = request.headers.get("content-type", "")
        if request.method == "POST":
            if content_type.startswith("application/json"):
                try:
                    data = await request.json()
                except ValueError:
                    data = None
                body = data if isinstance(data, dict) else None
            elif content_type.startswith(
                ("application/x-www-form-urlencoded", "multipart/form-data")
            ):
                form = await request.form()
                body = {key: value for key, value in form.items()}
        return cls(method=request.method, query=dict(request.query_params), body=body)
