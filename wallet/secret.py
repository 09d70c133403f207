"""
Scoped in-memory secrets.

The secret is held in a mutable bytearray that is zero-filled when the scope
exits, on success, error or early return. Python str copies handed out by
`reveal()` are immutable and cannot be wiped; keep them short-lived.
"""

from __future__ import annotations

from typing import Union


class ScopedSecret:
    """
    Context manager around a secret string.

    Usage:
        with ScopedSecret(resolve(None)) as secret:
            signer = LocalSigner.from_secret(secret.reveal(), chain_id)
        # backing buffer is now zeros
    """

    def __init__(self, value: Union[str, bytes, bytearray]) -> None:
        if isinstance(value, str):
            self._buf = bytearray(value.encode("utf-8"))
        elif isinstance(value, (bytes, bytearray)):
            self._buf = bytearray(value)
        else:
            raise TypeError(f"Secret must be str, bytes or bytearray; got {type(value).__name__}")
        self._wiped = False

    def __enter__(self) -> ScopedSecret:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def reveal(self) -> str:
        if self._wiped:
            raise ValueError("Secret has already been wiped")
        return self._buf.decode("utf-8")

    def wipe(self) -> None:
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __len__(self) -> int:
        return len(self._buf)

    def __repr__(self) -> str:
        return "ScopedSecret(***)"
