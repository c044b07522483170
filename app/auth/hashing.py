"""One-way credential hashing with bcrypt."""

from functools import lru_cache

import bcrypt

from app.auth.exceptions import PasswordPolicyError

MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72


def check_password_policy(secret: str) -> None:
    """Raise PasswordPolicyError unless `secret` is acceptable as a credential."""
    requirements = []
    if len(secret) < MIN_PASSWORD_LENGTH:
        requirements.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    if len(secret.encode("utf-8")) > MAX_PASSWORD_BYTES:
        requirements.append(f"at most {MAX_PASSWORD_BYTES} bytes")
    if requirements:
        raise PasswordPolicyError(requirements=requirements)


class CredentialHasher:
    """Stateless bcrypt wrapper. Hashes are salted, so equal inputs differ."""

    def __init__(self, rounds: int = 12):
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        """Hash a secret.

        Raises:
            PasswordPolicyError: If the secret exceeds what bcrypt can hash
        """
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise PasswordPolicyError(
                requirements=[f"at most {MAX_PASSWORD_BYTES} bytes"]
            )
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self._rounds)).decode(
            "ascii"
        )

    def verify(self, secret: str, hashed: str | None) -> bool:
        """Check `secret` against `hashed`. A missing or malformed hash never matches."""
        if not hashed:
            return False
        encoded = secret.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("ascii"))
        except ValueError:
            return False


@lru_cache
def get_credential_hasher() -> CredentialHasher:
    """Get cached hasher using the configured bcrypt cost."""
    from app.core.settings import get_settings

    return CredentialHasher(rounds=get_settings().bcrypt_rounds)
