"""
Cache generation token stored in the key-value service.
"""

import uuid
from typing import Callable, Optional

from shared.errors import CacheUnavailableError
from shared.logging import get_logger
from .keys import DEFAULT_NAMESPACE
from .kv_store import KeyValueStore


DEFAULT_VERSION_KEY = f"{DEFAULT_NAMESPACE}:version"


def new_token() -> str:
    """Generate a fresh generation token."""
    return str(uuid.uuid4())


class VersionTag:
    """Current cache generation, read to build keys and replaced to invalidate.

    Entries written under an old token are never deleted; they stop being
    addressable and expire through their TTL.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        key: str = DEFAULT_VERSION_KEY,
        token_factory: Optional[Callable[[], str]] = None,
    ):
        self.kv_store = kv_store
        self.key = key
        self.token_factory = token_factory or new_token
        self.logger = get_logger("tasks.cache.version")

    async def get_version(self) -> str:
        """Return the current token, creating one when none is stored.

        Concurrent first readers may each store a token; the last write wins
        and every reader converges on it.
        """
        existing = await self._call("read", self.kv_store.get, self.key)

        if isinstance(existing, bytes):
            existing = existing.decode("utf-8", errors="replace")
        if existing:
            return existing

        created = self.token_factory()
        await self._call("create", self.kv_store.put, self.key, created)

        self.logger.info("Cache generation created", version_key=self.key, version=created)
        return created

    async def invalidate(self) -> str:
        """Blindly overwrite the token with a new one and return it."""
        token = self.token_factory()
        await self._call("invalidate", self.kv_store.put, self.key, token)

        self.logger.info("Cache generation replaced", version_key=self.key, version=token)
        return token

    async def _call(self, stage: str, func, *args):
        try:
            return await func(*args)
        except CacheUnavailableError:
            raise
        except Exception as e:
            raise CacheUnavailableError(
                f"Cache version {stage} failed",
                {"version_key": self.key, "error": str(e), "error_type": type(e).__name__}
            ) from e
