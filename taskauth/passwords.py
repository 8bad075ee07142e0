import secrets

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import VerificationError, InvalidHashError

from taskauth.config import Settings


class PasswordHasher:
    """
    One-way salted password hashing with Argon2id.

    Argon2 advantages:
    - Winner of Password Hashing Competition (2015)
    - Memory-hard: Resists GPU/ASIC attacks
    - Configurable cost parameters
    - Automatic salt generation

    Every hash embeds its own random salt and parameters.
    Format: $argon2id$v=19$m=65536,t=3,p=4$salt$hash
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )
        self._dummy_hash = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(
            time_cost=settings.password_hash_time_cost,
            memory_cost=settings.password_hash_memory_cost,
            parallelism=settings.password_hash_parallelism,
        )

    @property
    def dummy_hash(self) -> str:
        """
        Hash of a random secret, made with this hasher's parameters.

        Verifying against it takes as long as a real check and never succeeds.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self._ph.hash(secrets.token_urlsafe(32))
        return self._dummy_hash

    def hash(self, password: str) -> str:
        return self._ph.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify password against stored hash.

        Uses constant-time comparison internally to prevent timing attacks.
        Returns False for a mismatch and for a malformed stored hash.
        """
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        """True when the hash was produced with different cost parameters."""
        try:
            return self._ph.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError):
            return False
