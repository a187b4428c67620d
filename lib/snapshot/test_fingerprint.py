"""
Tests for fingerprint generators, dood!
"""

import hashlib
import re

import pytest

from lib.snapshot.fingerprint import Sha1FingerprintGenerator
from lib.snapshot.identity import Identity


class TestSha1FingerprintGenerator:
    """Test SHA-1 fingerprints of identities."""

    def setup_method(self):
        self.generator = Sha1FingerprintGenerator()

    def testKeyIsSha1OfCanonicalString(self):
        identity = Identity.fromUrl("https://example.jp/p?code=1&TEST=save", suffix="pc")

        key = self.generator.generateKey(identity)

        assert key == hashlib.sha1(b"https://example.jp/p?code=1pc").hexdigest()
        assert re.fullmatch(r"[0-9a-f]{40}", key)

    def testDeterministic(self):
        first = self.generator.generateKey(Identity("https://example.jp", "/p", (("a", "1"),)))
        second = Sha1FingerprintGenerator().generateKey(Identity("https://example.jp", "/p", (("a", "1"),)))

        assert first == second

    def testCommandDoesNotAffectKey(self):
        saveKey = self.generator.generateKey(Identity.fromUrl("https://example.jp/p?TEST=save"))
        assertKey = self.generator.generateKey(Identity.fromUrl("https://example.jp/p?TEST=assert"))

        assert saveKey == assertKey

    def testSuffixChangesKey(self):
        pcKey = self.generator.generateKey(Identity.fromUrl("https://example.jp/p", suffix="pc"))
        spKey = self.generator.generateKey(Identity.fromUrl("https://example.jp/p", suffix="sp"))

        assert pcKey != spKey

    def testRejectsNonIdentity(self):
        with pytest.raises(TypeError):
            self.generator.generateKey("https://example.jp/p")  # type: ignore[arg-type]
