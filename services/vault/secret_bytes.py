"""Zeroable in-memory container for signing material."""

from typing import Optional


class SecretBytes:
    """Mutable byte buffer that can be overwritten in place.

    The secret lives in a ``bytearray`` owned by this object, so ``wipe()``
    zero-fills the same memory that held it. Callers should avoid turning the
    secret into ``str``/``bytes`` copies beyond the moment of use; every such
    copy escapes the wipe.
    """

    __slots__ = ("_buffer", "_wiped")

    def __init__(self, data: bytes | bytearray | str):
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer = bytearray(data)
        self._wiped = False

    @classmethod
    def adopt(cls, buffer: bytearray) -> "SecretBytes":
        """Take ownership of ``buffer`` without copying it."""
        obj = cls.__new__(cls)
        obj._buffer = buffer
        obj._wiped = False
        return obj

    @property
    def wiped(self) -> bool:
        return self._wiped

    def __len__(self) -> int:
        return len(self._buffer)

    def _check(self) -> None:
        if self._wiped:
            raise ValueError("Secret has been wiped")

    def reveal(self) -> str:
        """Decode the secret as UTF-8 text (e.g. a hex private key)."""
        self._check()
        return self._buffer.decode("utf-8")

    def reveal_bytes(self) -> bytes:
        self._check()
        return bytes(self._buffer)

    def copy(self) -> "SecretBytes":
        """Independent buffer; wiping one copy leaves the other intact."""
        self._check()
        return SecretBytes.adopt(bytearray(self._buffer))

    def wipe(self) -> None:
        """Overwrite every byte with zero. Safe to call repeatedly."""
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._wiped = True

    def __enter__(self) -> "SecretBytes":
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        self.wipe()
        return None

    def __eq__(self, other) -> bool:
        if not isinstance(other, SecretBytes):
            return NotImplemented
        return not self._wiped and not other._wiped and self._buffer == other._buffer

    __hash__ = None

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buffer)} bytes"
        return f"SecretBytes(<redacted, {state}>)"

    __str__ = __repr__

    def __reduce__(self):
        raise TypeError("SecretBytes cannot be pickled")
