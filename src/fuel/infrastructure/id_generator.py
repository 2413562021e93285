"""Random hash-suffixed identifiers for stored records."""

import secrets
from collections.abc import Collection

from fuel.domain.models import RUN_ID_PREFIX, EntityKind


class IdGenerator:
    """Generate ``<prefix>-<hex>`` identifiers with collision checks."""

    def __init__(self, hash_length: int = 6, max_attempts: int = 100) -> None:
        """Initialize ID generator.

        Args:
            hash_length: Number of hex characters after the prefix
            max_attempts: How many times to retry on collision before giving up
        """
        self.hash_length = hash_length
        self.max_attempts = max_attempts

    def generate(self, prefix: str, existing: Collection[str] = ()) -> str:
        """Generate an ID not present in ``existing``.

        Raises:
            RuntimeError: If no unique ID was found within max_attempts
        """
        for _ in range(self.max_attempts):
            suffix = secrets.token_hex((self.hash_length + 1) // 2)[: self.hash_length]
            candidate = f"{prefix}-{suffix}"
            if candidate not in existing:
                return candidate
        raise RuntimeError(
            f"Failed to generate unique {prefix} ID after {self.max_attempts} attempts"
        )

    def for_kind(self, kind: EntityKind, existing: Collection[str] = ()) -> str:
        return self.generate(kind.prefix, existing)

    def for_run(self, existing: Collection[str] = ()) -> str:
        return self.generate(RUN_ID_PREFIX, existing)
