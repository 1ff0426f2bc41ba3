"""Tests for seed phrase encryption and PIN hashing."""

import pytest

from tests.helpers import PHRASE_ABANDON, PHRASE_LEGAL
from vaultkeeper.exceptions import AuthenticationFailedError
from vaultkeeper.models import EncryptedSeed
from vaultkeeper.wallet.cipher import IV_LENGTH, SALT_LENGTH, TAG_LENGTH, SeedCipher


@pytest.fixture(scope="module")
def cipher() -> SeedCipher:
    return SeedCipher()


@pytest.fixture(scope="module")
def key(cipher: SeedCipher) -> bytes:
    return cipher.derive_key(PHRASE_ABANDON, b"\x01" * SALT_LENGTH)


class TestInit:
    """Tests for cipher configuration."""

    def test_default_iterations(self) -> None:
        """Default iteration count is the 100k floor."""
        assert SeedCipher().iterations == 100_000

    def test_rejects_weak_iterations(self) -> None:
        """Iteration counts below the floor are refused."""
        with pytest.raises(ValueError, match="at least 100000"):
            SeedCipher(iterations=1000)


class TestDeriveKey:
    """Tests for PBKDF2 key derivation."""

    def test_key_length(self, key: bytes) -> None:
        """Derived keys are 32 bytes."""
        assert len(key) == 32

    def test_deterministic(self, cipher: SeedCipher, key: bytes) -> None:
        """Same secret and salt give the same key."""
        assert cipher.derive_key(PHRASE_ABANDON, b"\x01" * SALT_LENGTH) == key

    def test_salt_changes_key(self, cipher: SeedCipher, key: bytes) -> None:
        """A different salt gives a different key."""
        assert cipher.derive_key(PHRASE_ABANDON, b"\x02" * SALT_LENGTH) != key


class TestEncryptDecrypt:
    """Tests for AES-GCM encryption."""

    def test_round_trip(self, cipher: SeedCipher, key: bytes) -> None:
        """Decrypting what was encrypted returns the plaintext."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        assert cipher.decrypt(ciphertext, iv, tag, key) == PHRASE_ABANDON

    def test_output_shape(self, cipher: SeedCipher, key: bytes) -> None:
        """IV and tag have the configured lengths; ciphertext hides plaintext."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        assert len(iv) == IV_LENGTH
        assert len(tag) == TAG_LENGTH
        assert PHRASE_ABANDON.encode() not in ciphertext

    def test_fresh_iv_each_time(self, cipher: SeedCipher, key: bytes) -> None:
        """Two encryptions of the same plaintext differ."""
        first = cipher.encrypt(PHRASE_ABANDON, key)
        second = cipher.encrypt(PHRASE_ABANDON, key)
        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_wrong_key_fails(self, cipher: SeedCipher, key: bytes) -> None:
        """Decrypting under another key raises AuthenticationFailedError."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        wrong = cipher.derive_key(PHRASE_LEGAL, b"\x01" * SALT_LENGTH)
        with pytest.raises(AuthenticationFailedError):
            cipher.decrypt(ciphertext, iv, tag, wrong)

    def test_tampered_ciphertext_fails(self, cipher: SeedCipher, key: bytes) -> None:
        """A flipped ciphertext bit is detected."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        tampered = bytes([ciphertext[0] ^ 0x01]) + ciphertext[1:]
        with pytest.raises(AuthenticationFailedError):
            cipher.decrypt(tampered, iv, tag, key)

    def test_tampered_tag_fails(self, cipher: SeedCipher, key: bytes) -> None:
        """A flipped tag bit is detected."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        tampered = tag[:-1] + bytes([tag[-1] ^ 0x80])
        with pytest.raises(AuthenticationFailedError):
            cipher.decrypt(ciphertext, iv, tampered, key)

    def test_truncated_tag_fails(self, cipher: SeedCipher, key: bytes) -> None:
        """A short tag is rejected before decryption."""
        ciphertext, iv, tag = cipher.encrypt(PHRASE_ABANDON, key)
        with pytest.raises(AuthenticationFailedError, match="Malformed"):
            cipher.decrypt(ciphertext, iv, tag[:8], key)


class TestSeedEncryption:
    """Tests for the stored seed format."""

    def test_encrypt_seed_hex_fields(self, cipher: SeedCipher) -> None:
        """Stored fields are hex with the tag appended to the ciphertext."""
        encrypted = cipher.encrypt_seed(PHRASE_ABANDON)
        assert len(bytes.fromhex(encrypted.iv)) == IV_LENGTH
        assert len(bytes.fromhex(encrypted.salt)) == SALT_LENGTH
        assert len(bytes.fromhex(encrypted.ciphertext)) == len(PHRASE_ABANDON) + TAG_LENGTH

    def test_decrypt_seed_with_phrase(self, cipher: SeedCipher) -> None:
        """The phrase opens its own stored form."""
        encrypted = cipher.encrypt_seed(PHRASE_ABANDON)
        assert cipher.decrypt_seed(encrypted, PHRASE_ABANDON) == PHRASE_ABANDON

    def test_decrypt_seed_with_other_phrase_fails(self, cipher: SeedCipher) -> None:
        """Another phrase cannot open the stored seed."""
        encrypted = cipher.encrypt_seed(PHRASE_ABANDON)
        with pytest.raises(AuthenticationFailedError):
            cipher.decrypt_seed(encrypted, PHRASE_LEGAL)

    def test_decrypt_seed_tampered_record_fails(self, cipher: SeedCipher) -> None:
        """Modifying the stored ciphertext is detected."""
        encrypted = cipher.encrypt_seed(PHRASE_ABANDON)
        first = "1" if encrypted.ciphertext[0] != "1" else "2"
        tampered = encrypted.model_copy(
            update={"ciphertext": first + encrypted.ciphertext[1:]}
        )
        with pytest.raises(AuthenticationFailedError):
            cipher.decrypt_seed(tampered, PHRASE_ABANDON)

    def test_decrypt_seed_non_hex_fails(self, cipher: SeedCipher) -> None:
        """Corrupted non-hex fields raise AuthenticationFailedError."""
        corrupt = EncryptedSeed(ciphertext="zz", iv="zz", salt="zz")
        with pytest.raises(AuthenticationFailedError, match="Malformed"):
            cipher.decrypt_seed(corrupt, PHRASE_ABANDON)


class TestPin:
    """Tests for PIN hashing."""

    def test_hash_and_verify(self, cipher: SeedCipher) -> None:
        """The right PIN verifies, a wrong one does not."""
        pin_hash, pin_salt = cipher.hash_pin("123456")
        assert cipher.verify_pin("123456", pin_hash, pin_salt)
        assert not cipher.verify_pin("654321", pin_hash, pin_salt)

    def test_salted(self, cipher: SeedCipher) -> None:
        """Hashing the same PIN twice uses different salts."""
        first = cipher.hash_pin("123456")
        second = cipher.hash_pin("123456")
        assert first[1] != second[1]
        assert first[0] != second[0]

    def test_corrupt_hash_does_not_verify(self, cipher: SeedCipher) -> None:
        """Non-hex stored values fail verification instead of raising."""
        assert not cipher.verify_pin("123456", "not-hex", "also-not-hex")
