"""
core/identity.py
----------------
Identity Context Resolver.

Turns an opaque session token into a Principal (user_id, email, org_id,
role). This is the only place request identity is derived:

  - org_id comes from the verified token claims, falling back to the
    default organisation configured at startup. Request bodies and
    query parameters are never consulted.
  - role is parsed into the Role enum here. Missing or unknown values
    are clamped to USER.

Resolution is a pure read of session state: no DB access, no writes.
"""

from dataclasses import dataclass
from enum import Enum as PyEnum
from typing import Any, Mapping, Optional

from jose import JWTError

from offerdesk.core.errors import Forbidden, MissingOrganization, Unauthenticated
from offerdesk.core.logging import get_logger
from offerdesk.core.security import decode_access_token

logger = get_logger(__name__)


class Role(str, PyEnum):
    ADMIN = "ADMIN"
    USER = "USER"

    @classmethod
    def parse(cls, raw: Any) -> "Role":
        """Clamp free-form session metadata to a known role."""
        if isinstance(raw, str):
            try:
                return cls(raw.strip().upper())
            except ValueError:
                pass
        if raw is not None:
            logger.warning("Unknown role in session clamped to USER", raw_role=str(raw))
        return cls.USER


@dataclass(frozen=True)
class IdentityConfig:
    secret_key: str
    algorithm: str = "HS256"
    default_org_id: Optional[str] = None


@dataclass(frozen=True)
class Principal:
    user_id: str
    email: str
    org_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def ensure_admin(principal: Principal) -> Principal:
    if not principal.is_admin:
        logger.warning(
            "Admin action refused",
            user_id=principal.user_id,
            org_id=principal.org_id,
        )
        raise Forbidden()
    return principal


class IdentityContextResolver:

    def __init__(self, config: IdentityConfig) -> None:
        self._config = config

    @property
    def default_org_id(self) -> Optional[str]:
        return self._config.default_org_id

    def resolve_context(self, session_token: Optional[str]) -> Principal:
        """
        Raises:
            Unauthenticated: no token, or token invalid / expired / without subject.
            MissingOrganization: valid session but no org_id and no default org.
        """
        if not session_token:
            raise Unauthenticated()

        try:
            claims = decode_access_token(
                session_token,
                secret_key=self._config.secret_key,
                algorithm=self._config.algorithm,
            )
        except JWTError as exc:
            logger.warning("Session token rejected", error=str(exc))
            raise Unauthenticated() from exc

        return self.principal_from_claims(claims)

    def principal_from_claims(self, claims: Mapping[str, Any]) -> Principal:
        user_id = claims.get("sub")
        if not user_id:
            raise Unauthenticated()

        if "org_id" in claims:
            # Only an absent claim falls back to the default organisation.
            org_id = _clean(claims["org_id"])
            if org_id is None:
                logger.warning("Session carries a malformed organization", user_id=user_id)
                raise Unauthenticated()
        else:
            org_id = self._config.default_org_id
        if not org_id:
            logger.warning("Session has no organization", user_id=user_id)
            raise MissingOrganization()

        return Principal(
            user_id=str(user_id),
            email=str(claims.get("email") or "").strip().lower(),
            org_id=org_id,
            role=Role.parse(claims.get("role")),
        )


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
