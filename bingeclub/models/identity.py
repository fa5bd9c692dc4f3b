# bingeclub/models/identity.py

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Identity(BaseModel):
    """
    The verified caller. Built from token claims by the verifier and passed
    explicitly into every protected handler; every store call is scoped by
    `external_user_id`.
    """
    model_config = ConfigDict(frozen=True)

    external_user_id: str = Field(..., description="Issuer-assigned stable user id (JWT 'sub' claim).")
    email: Optional[str] = Field(None, description="User's email address, if the issuer provides one.")
    display_name: Optional[str] = Field(None, description="User's display name.")
    avatar_url: Optional[str] = Field(None, description="URL to the user's avatar image.")

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        """
        Maps decoded token claims onto an Identity. Top-level OIDC-style claims
        (`name`, `picture`) win over Supabase `user_metadata` fields.
        """
        metadata = claims.get("user_metadata") or {}
        return cls(
            external_user_id=claims["sub"],
            email=claims.get("email") or metadata.get("email"),
            display_name=claims.get("name") or metadata.get("full_name") or metadata.get("name"),
            avatar_url=claims.get("picture") or metadata.get("avatar_url") or metadata.get("picture"),
        )


class UserProfile(Identity):
    """Identity as persisted in the `user_profiles` collection."""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
