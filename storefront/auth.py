import time
from typing import Optional

import jwt
from passlib.context import CryptContext

from .schemas import Claims


# bcrypt with a work factor of 10. pbkdf2_sha256 digests are still accepted for
# verification. bcrypt only looks at the first 72 bytes of a password.
pwd_context = CryptContext(
    schemes=["bcrypt", "pbkdf2_sha256"],
    deprecated="auto",
    bcrypt__rounds=10,
)

ALGORITHM = "HS256"


class PasswordHashError(Exception):
    """The hashing backend failed; surfaces to clients as a generic server error."""


class InvalidToken(Exception):
    """Bad signature, malformed token or expired token."""


def hash_password(password: str) -> str:
    try:
        return pwd_context.hash(password)
    except (ValueError, TypeError, RuntimeError) as e:
        raise PasswordHashError("password hashing failed") from e


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError, RuntimeError) as e:
        # unidentifiable digest or missing bcrypt backend
        raise PasswordHashError("password verification failed") from e


class TokenService:
    """Issues and verifies signed, time-limited bearer tokens.

    The secret is handed in once from Settings and never changes for the
    lifetime of the process. Whoever holds it can mint tokens for any user.
    """

    def __init__(self, secret: str, ttl_seconds: int = 60 * 60, algorithm: str = ALGORITHM):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.algorithm = algorithm

    def issue(self, claims: Claims, now: Optional[int] = None) -> str:
        iat = int(time.time()) if now is None else int(now)
        payload = claims.model_dump()
        payload.update({"sub": str(claims.id), "iat": iat, "exp": iat + self.ttl_seconds})
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Claims:
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e)) from e
        try:
            return Claims.model_validate(payload)
        except ValueError as e:
            # signed by us but missing identity fields
            raise InvalidToken("token payload is incomplete") from e
