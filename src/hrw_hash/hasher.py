"""Node/key digests and the affinity merge function."""
import dataclasses
import hashlib
import struct
from typing import Any, Callable, Optional, Protocol

from .errors import UnsupportedValueError

MAX_U64 = 0xFFFF_FFFF_FFFF_FFFF
ENCODING_VERSION = 1

_VERSION_PREFIX = bytes([ENCODING_VERSION])
_LENGTH = struct.Struct(">I")
_DOUBLE = struct.Struct(">d")


class HashProvider(Protocol):
    """Anything that turns a value into a stable 64-bit digest."""

    def hash(self, value: Any) -> int:
        ...


def _encode(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return b"b" + bytes(value)
    if isinstance(value, str):
        return b"s" + value.encode("utf-8")
    # Equal numbers share an encoding, as with hash(): 1 == 1.0 == True, 0.0 == -0.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        value = int(value)
        length = (value.bit_length() + 8) // 8
        return b"i" + value.to_bytes(length, byteorder="big", signed=True)
    if isinstance(value, float):
        return b"f" + _DOUBLE.pack(value)
    if value is None:
        return b"n"
    if isinstance(value, (tuple, list)):
        return b"t" + _join(_encode(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return b"u" + _join(sorted(_encode(item) for item in value))

    hrw_key = getattr(value, "hrw_key", None)
    if callable(hrw_key):
        return _encode(hrw_key())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _encode(tuple(
            getattr(value, f.name) for f in dataclasses.fields(value) if f.compare
        ))

    raise UnsupportedValueError(
        f"Cannot derive a stable encoding for {type(value).__name__!r}; "
        "define hrw_key() or use a dataclass"
    )


def _join(parts) -> bytes:
    return b"".join(_LENGTH.pack(len(part)) + part for part in parts)


def encode_value(value: Any) -> bytes:
    """Return the canonical, versioned byte encoding of a value.

    Supported: bytes-like, str, int (bool included), float, None, tuple/list, set/frozenset,
    dataclass instances (their compare=True fields) and any object exposing
    an ``hrw_key()`` method.

    Values that compare equal as numbers encode identically: True and 1,
    2.0 and 2, -0.0 and 0.

    Raises:
        UnsupportedValueError: If the value has no stable encoding
    """
    return _VERSION_PREFIX + _encode(value)


class Blake2bHashProvider:
    """Default hash provider: BLAKE2b with a 64-bit digest.

    Digests depend only on the encoded bytes, so they are identical across
    processes, PYTHONHASHSEED values and platforms.
    """

    def __init__(self, key: bytes = b""):
        """Initialize provider.

        Args:
            key: Optional BLAKE2b key (up to 64 bytes) for keyed digests
        """
        if len(key) > hashlib.blake2b.MAX_KEY_SIZE:
            raise ValueError(f"key must be at most {hashlib.blake2b.MAX_KEY_SIZE} bytes, got {len(key)}")
        self._key = bytes(key)

    @property
    def keyed(self) -> bool:
        return bool(self._key)

    def hash(self, value: Any) -> int:
        h = hashlib.blake2b(digest_size=8, key=self._key)  # 64-bit hash
        h.update(encode_value(value))
        return int.from_bytes(h.digest(), byteorder="big")

    def __repr__(self) -> str:
        return f"Blake2bHashProvider(keyed={self.keyed})"


class FunctionHashProvider:
    """Adapts a plain ``value -> int`` function to the HashProvider protocol."""

    def __init__(self, func: Callable[[Any], int]):
        self.func = func

    def hash(self, value: Any) -> int:
        return self.func(value) & MAX_U64

    def __repr__(self) -> str:
        return f"FunctionHashProvider({getattr(self.func, '__name__', self.func)!r})"


DEFAULT_HASH_PROVIDER = Blake2bHashProvider()


def resolve_hash_provider(provider: Optional[HashProvider]) -> HashProvider:
    """Return provider, or the default one when None."""
    return DEFAULT_HASH_PROVIDER if provider is None else provider


def merge(a: int, b: int) -> int:
    """Mix a node digest with a key digest into a 64-bit affinity.

    XOR followed by the 64-bit murmur3 finalizer.
    """
    x = a ^ b
    x ^= x >> 33
    x = (x * 0xFF51_AFD7_ED55_8CCD) & MAX_U64
    x ^= x >> 33
    x = (x * 0xC4CE_B9FE_1A85_EC53) & MAX_U64
    x ^= x >> 33
    return x
