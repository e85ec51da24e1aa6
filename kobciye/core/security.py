import asyncio
import uuid
from datetime import timedelta
from typing import Any, Dict

import bcrypt
import jwt

from kobciye.core.settings import settings
from kobciye.libs.formats.datetime import now_tzinfo

TOKEN_TYPE = "access"
# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class SecurityService:
    """JWT access tokens for the API and bcrypt password hashes for accounts."""

    def __init__(self):
        self.secret_key = settings.SECRET_KEY
        self.algorithm = settings.ALGORITHM
        self.ttl = timedelta(minutes=float(settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    # ==============================
    # ACCESS TOKENS
    # ==============================
    async def create_access_token(self, user_id: uuid.UUID | str) -> str:
        issued = now_tzinfo()
        claims: Dict[str, Any] = {
            "sub": str(user_id),
            "typ": TOKEN_TYPE,
            "iat": issued,
            "exp": issued + self.ttl,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    async def decode_access_token(self, token: str) -> Dict[str, Any]:
        """Returns the claims or raises ValueError for expired, forged or foreign tokens."""
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise ValueError("Token expired")
        except jwt.InvalidTokenError:
            raise ValueError("Invalid token")

        if claims.get("typ") != TOKEN_TYPE:
            raise ValueError("Invalid token")
        return claims

    # ==============================
    # PASSWORDS
    # ==============================
    @staticmethod
    def _secret(plain: str) -> bytes:
        return plain.encode("utf-8")[:BCRYPT_MAX_BYTES]

    @classmethod
    async def hash_password(cls, plain: str) -> str:
        hashed = await asyncio.to_thread(bcrypt.hashpw, cls._secret(plain), bcrypt.gensalt())
        return hashed.decode("utf-8")

    @classmethod
    async def verify_password(cls, plain: str, hashed: str) -> bool:
        try:
            return await asyncio.to_thread(bcrypt.checkpw, cls._secret(plain), hashed.encode("utf-8"))
        except ValueError:
            # malformed stored hash
            return False
