from __future__ import annotations

import json
from typing import Optional

from pydantic import BaseModel as PydanticBaseModel
from pydantic import Field

from bistro.models.base import BaseModel


class SessionData(PydanticBaseModel):
    """Payload carried inside a signed session token.

    Timestamps are epoch milliseconds.  The wire names are camelCase so a
    token stays readable by any client that inspects the cookie.
    """

    issued_at: int = Field(alias="issuedAt")
    expires_at: int = Field(alias="expiresAt")
    nonce: str

    model_config = {"strict": True, "extra": "forbid", "populate_by_name": True}

    def canonical_json(self) -> str:
        """Compact JSON in fixed field order; the exact bytes that get signed."""
        return json.dumps(
            {"issuedAt": self.issued_at, "expiresAt": self.expires_at, "nonce": self.nonce},
            separators=(",", ":"),
        )


class LoginRequest(BaseModel):
    password: str = ""


class LoginResponse(BaseModel):
    success: bool
    message: str


class VerifyResponse(BaseModel):
    authenticated: bool
    message: str
    expires_at: Optional[int] = Field(default=None, serialization_alias="expiresAt")
    expiring_soon: bool = Field(default=False, serialization_alias="expiringSoon")
