"""
Admin credential handling

The admin token is hashed once at process start into an AdminCredentials
value held on app.state; requests are checked against it in constant time.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Optional


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class AdminCredentials:
    token_hash: str

    @classmethod
    def from_token(cls, token: str) -> "AdminCredentials":
        if not token:
            raise ValueError("ADMIN_API_TOKEN must not be empty")
        return cls(token_hash=_digest(token))

    def verify(self, token: Optional[str]) -> bool:
        if not token:
            return False
        return hmac.compare_digest(self.token_hash, _digest(token))
