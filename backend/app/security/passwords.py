"""
security/passwords.py — bcrypt password hashing.

The hash string is self-describing ($2b$<cost>$<salt><digest>), so verify()
needs nothing but the plaintext and the stored string. Raw passwords are
never stored and never logged.

bcrypt is CPU-bound by design. Flask serves each request on its own worker
thread, so the sync methods are used there; hash_async/verify_async push the
work onto a thread pool for callers running on an event loop.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import bcrypt

from backend.config import AuthSettings


class PasswordHasher:

    def __init__(self, settings: AuthSettings, max_workers: int | None = None) -> None:
        self._rounds = settings.bcrypt_rounds
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None

    @property
    def rounds(self) -> int:
        return self._rounds

    def hash(self, plaintext: str) -> str:
        return bcrypt.hashpw(
            plaintext.encode("utf-8"),
            bcrypt.gensalt(rounds=self._rounds),
        ).decode("utf-8")

    def verify(self, plaintext: str, hash_string: str | None) -> bool:
        """
        Constant-time check of `plaintext` against a stored bcrypt hash.

        A missing or malformed hash is a verification failure, not an error.
        """
        if not hash_string:
            return False
        try:
            return bcrypt.checkpw(
                plaintext.encode("utf-8"),
                hash_string.encode("utf-8"),
            )
        except ValueError:
            # bcrypt raises ValueError("Invalid salt") for non-bcrypt strings.
            return False

    async def hash_async(self, plaintext: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool(), self.hash, plaintext)

    async def verify_async(self, plaintext: str, hash_string: str | None) -> bool:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._pool(), self.verify, plaintext, hash_string)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _pool(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="bcrypt",
            )
        return self._executor
