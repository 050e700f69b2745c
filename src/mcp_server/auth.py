"""Authentication for the MCP Server.

Handles:
- Extracting a credential from request headers
- Classifying it as an opaque API key or a JWT
- Validating it through a pluggable credential policy
"""

import hmac
import json
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from shared.logging import get_logger
from shared.models import AuthResult, Credential, CredentialKind
from mcp_server.errors import AuthenticationError

logger = get_logger(__name__)

BEARER_SCHEME = "bearer"


class AuthConfig(BaseModel):
    """Authentication configuration."""
    master_api_key: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    min_api_key_length: int = 16
    api_key_header: str = "X-API-Key"
    token_expire_minutes: int = 60


def _get_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def is_jwt_shaped(token: str) -> bool:
    """
    Check whether a token is structurally a JWT.

    Requires three dot-separated segments whose header segment decodes to a
    JSON object naming an ``alg``. The signature is not checked here.
    """
    if token.count(".") != 2:
        return False

    try:
        header = jwt.get_unverified_header(token)
    except (JWTError, json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return False

    if not isinstance(header, dict) or not header.get("alg"):
        return False

    typ = header.get("typ")
    return typ is None or str(typ).upper() == "JWT"


def extract_credential(
    headers: Mapping[str, str],
    api_key_header: str = "X-API-Key"
) -> Optional[Credential]:
    """
    Extract the caller's credential from request headers.

    ``Authorization: Bearer <token>`` takes precedence over the raw API key
    header. Returns None when neither carries a credential.
    """
    authorization = _get_header(headers, "Authorization")
    if authorization:
        scheme, _, token = authorization.strip().partition(" ")
        if scheme.lower() != BEARER_SCHEME:
            return None

        token = token.strip()
        if not token:
            return None

        kind = CredentialKind.JWT if is_jwt_shaped(token) else CredentialKind.API_KEY
        return Credential(kind=kind, value=token, source="authorization")

    api_key = _get_header(headers, api_key_header)
    if api_key and api_key.strip():
        return Credential(
            kind=CredentialKind.API_KEY,
            value=api_key.strip(),
            source=api_key_header.lower()
        )

    return None


class CredentialValidator(ABC):
    """Policy deciding whether a credential is acceptable."""

    @abstractmethod
    def validate(self, credential: Credential) -> AuthResult:
        """Validate a credential and classify it."""


class ConfiguredCredentialValidator(CredentialValidator):
    """
    Validates credentials against statically configured secrets.

    API keys must meet the minimum length and equal the master key.
    JWTs must carry a valid signature and an ``exp`` claim that has not
    passed. A missing master key or signing secret rejects every credential
    of that kind.
    """

    def __init__(self, config: AuthConfig) -> None:
        self.config = config

    def validate(self, credential: Credential) -> AuthResult:
        if credential.kind == CredentialKind.JWT:
            return self._validate_jwt(credential.value)
        return self._validate_api_key(credential.value)

    def _validate_api_key(self, api_key: str) -> AuthResult:
        master_key = self.config.master_api_key
        if not master_key:
            return self._reject(CredentialKind.API_KEY, "No master API key configured")

        if len(api_key) < self.config.min_api_key_length:
            return self._reject(CredentialKind.API_KEY, "API key too short")

        if not hmac.compare_digest(api_key.encode("utf-8"), master_key.encode("utf-8")):
            return self._reject(CredentialKind.API_KEY, "API key mismatch")

        return AuthResult(valid=True, kind=CredentialKind.API_KEY, subject="api_key")

    def _validate_jwt(self, token: str) -> AuthResult:
        if not self.config.jwt_secret:
            return self._reject(CredentialKind.JWT, "No JWT secret configured")

        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.jwt_algorithm],
                options={"require_exp": True}
            )
        except JWTError as e:
            return self._reject(CredentialKind.JWT, str(e))

        return AuthResult(
            valid=True,
            kind=CredentialKind.JWT,
            subject=claims.get("sub"),
            claims=claims
        )

    @staticmethod
    def _reject(kind: CredentialKind, reason: str) -> AuthResult:
        logger.warning("Credential rejected", kind=kind.value, reason=reason)
        return AuthResult(valid=False, kind=kind, reason=reason)

    def issue_token(
        self,
        subject: str,
        expires_in: Optional[timedelta] = None,
        **claims: Any
    ) -> str:
        """
        Create a signed JWT accepted by this validator.

        Raises:
            ValueError: If no signing secret is configured
        """
        if not self.config.jwt_secret:
            raise ValueError("Cannot issue tokens without a JWT secret")

        expires_in = expires_in or timedelta(minutes=self.config.token_expire_minutes)
        payload = {
            **claims,
            "sub": subject,
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.jwt_algorithm)


class AuthGate:
    """
    Authentication gate in front of the dispatcher.

    Rejects requests without a credential ("Authentication required") and
    requests whose credential fails the policy ("Invalid credentials").
    """

    def __init__(
        self,
        validator: CredentialValidator,
        api_key_header: str = "X-API-Key"
    ) -> None:
        self.validator = validator
        self.api_key_header = api_key_header

    @classmethod
    def from_config(cls, config: AuthConfig) -> "AuthGate":
        return cls(ConfiguredCredentialValidator(config), api_key_header=config.api_key_header)

    def extract_credential(self, headers: Mapping[str, str]) -> Optional[Credential]:
        return extract_credential(headers, api_key_header=self.api_key_header)

    def authenticate(self, headers: Mapping[str, str]) -> AuthResult:
        """
        Authenticate a request from its headers.

        Raises:
            AuthenticationError: If the credential is missing or invalid
        """
        credential = self.extract_credential(headers)
        if credential is None:
            raise AuthenticationError("Authentication required")

        result = self.validator.validate(credential)
        if not result.valid:
            raise AuthenticationError("Invalid credentials")

        return result
