"""Identity record construction.

Apple has no profile endpoint. The subject and email come from the verified
identity token; the name is only sent once, as a JSON `user` field in the
body of the very first authorization for that user.

See:
- https://developer.apple.com/documentation/sign_in_with_apple/sign_in_with_apple_js/incorporating_sign_in_with_apple_into_other_platforms
"""

import json
from collections.abc import Mapping
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from apple_signin.auth.constants import PROVIDER_NAME
from apple_signin.auth.request import AuthRequest


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NameParts(_CamelModel):
    given_name: str = ""
    family_name: str = ""
    middle_name: str = ""


class EmailEntry(_CamelModel):
    value: str


class IdentityRecord(_CamelModel):
    """User identity handed to the verify callback.

    Dump with `model_dump(by_alias=True)` for the camelCase wire shape
    (displayName, givenName, ...).
    """

    provider: str = Field(default=PROVIDER_NAME)
    id: str = Field(description="Apple user identifier (sub claim)")
    provider_id: str = Field(alias="provider_id", description="Same as id")
    email: str | None = Field(default=None, description="Email (may be a private relay address)")
    emails: list[EmailEntry] = Field(default_factory=list)
    display_name: str = ""
    name: NameParts = Field(default_factory=NameParts)


def _parse_user(raw: Any) -> Mapping[str, Any] | None:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, str) and raw:
        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unparsable `user` field in authorization response")
            return None
        return parsed if isinstance(parsed, Mapping) else None
    return None


def _name_part(name: Mapping[str, Any], key: str) -> str:
    value = name.get(key)
    return value if isinstance(value, str) else ""


def build_identity_record(request: AuthRequest, claims: Mapping[str, Any]) -> IdentityRecord:
    """Build the identity record for one successful authentication.

    Args:
        request: Inbound request (body may carry `user` on first login)
        claims: Verified identity token claims

    Returns:
        IdentityRecord with empty name fields when no name was sent
    """
    subject = claims["sub"]
    email = claims.get("email")

    first_name = ""
    last_name = ""
    display_name = ""
    user = _parse_user((request.body or {}).get("user"))
    name = user.get("name") if user else None
    if isinstance(name, Mapping):
        first_name = _name_part(name, "firstName")
        last_name = _name_part(name, "lastName")
        display_name = " ".join(part for part in (first_name, last_name) if part)

    return IdentityRecord(
        id=subject,
        provider_id=subject,
        email=email,
        emails=[EmailEntry(value=email)] if email else [],
        display_name=display_name,
        name=NameParts(given_name=first_name, family_name=last_name),
    )
