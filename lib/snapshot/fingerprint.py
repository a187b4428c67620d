"""
Fingerprint generators for snapshot keys, dood!

A fingerprint is the content-addressed name of a baseline: a hash of the
canonical string form of an Identity. The same identity (suffix included)
always produces the same fingerprint, and nothing else goes into the hash.

Available Generators:
    - Sha1FingerprintGenerator: SHA-1 of the canonical identity string (default)
"""

import hashlib
from typing import Protocol, TypeVar

from .identity import Identity

T = TypeVar("T", contravariant=True)


class KeyGenerator(Protocol[T]):
    """
    Protocol for generating store keys from objects.

    Type Parameters:
        T: The type of objects that can be converted to store keys
    """

    def generateKey(self, obj: T) -> str:
        """
        Generate string store key from object.

        Args:
            obj: The object to convert to a key

        Returns:
            str: A string suitable for use as a file name in the store
        """
        ...


class Sha1FingerprintGenerator(KeyGenerator[Identity]):
    """
    SHA-1 fingerprint of an Identity, dood!

    Example:
        >>> generator = Sha1FingerprintGenerator()
        >>> key = generator.generateKey(Identity("https://x", "/p"))
        >>> print(len(key))  # 40
    """

    def generateKey(self, obj: Identity) -> str:
        """
        Generate fingerprint from identity.

        Args:
            obj: Identity to fingerprint

        Returns:
            str: 40-character lowercase SHA-1 hexadecimal digest

        Raises:
            TypeError: If obj is not an Identity
        """
        if not isinstance(obj, Identity):
            raise TypeError(f"Sha1FingerprintGenerator expects Identity input, got {type(obj).__name__}, dood!")

        return hashlib.sha1(obj.canonicalString().encode("utf-8")).hexdigest()
