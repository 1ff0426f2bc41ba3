"""Seed phrase encryption at rest.

Key derivation is PBKDF2-HMAC-SHA512 over the seed phrase (or PIN) with a
per-record random salt; encryption is AES-256-GCM. The phrase is its own
credential: anyone holding it can decrypt its stored form, so this layer
only protects against exfiltration of the store.
"""

import hmac
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from vaultkeeper.exceptions import AuthenticationFailedError
from vaultkeeper.models import EncryptedSeed

# Security constants
KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
SALT_LENGTH = 16
TAG_LENGTH = 16
MIN_ITERATIONS = 100_000


class SeedCipher:
    """Authenticated encryption of seed phrases and PIN hashing.

    Usage:
        cipher = SeedCipher()
        encrypted = cipher.encrypt_seed(phrase)
        assert cipher.decrypt_seed(encrypted, phrase) == phrase
    """

    def __init__(self, iterations: int = MIN_ITERATIONS) -> None:
        """Initialize the cipher.

        Args:
            iterations: PBKDF2 iteration count.

        Raises:
            ValueError: If iterations is below the security floor.
        """
        if iterations < MIN_ITERATIONS:
            raise ValueError(f"PBKDF2 iterations must be at least {MIN_ITERATIONS}")
        self._iterations = iterations

    @property
    def iterations(self) -> int:
        """PBKDF2 iteration count."""
        return self._iterations

    def derive_key(self, secret: str, salt: bytes) -> bytes:
        """Derive a 256-bit key from a secret and salt.

        Deterministic for identical inputs. Slow on purpose; call it via
        ``asyncio.to_thread`` from async code.
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=KEY_LENGTH,
            salt=salt,
            iterations=self._iterations,
        )
        return kdf.derive(secret.encode("utf-8"))

    def encrypt(self, plaintext: str, key: bytes) -> tuple[bytes, bytes, bytes]:
        """Encrypt with AES-256-GCM under a fresh random IV.

        Args:
            plaintext: Text to encrypt.
            key: 32-byte key.

        Returns:
            Tuple of (ciphertext, iv, auth_tag).
        """
        iv = secrets.token_bytes(IV_LENGTH)
        sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
        return sealed[:-TAG_LENGTH], iv, sealed[-TAG_LENGTH:]

    def decrypt(self, ciphertext: bytes, iv: bytes, auth_tag: bytes, key: bytes) -> str:
        """Decrypt and authenticate AES-256-GCM ciphertext.

        Args:
            ciphertext: Encrypted bytes without the tag.
            iv: Initialization vector used at encryption.
            auth_tag: 16-byte GCM tag.
            key: 32-byte key.

        Returns:
            The original plaintext.

        Raises:
            AuthenticationFailedError: On tag mismatch, wrong key or malformed input.
        """
        if len(auth_tag) != TAG_LENGTH:
            raise AuthenticationFailedError("Malformed authentication tag")
        try:
            plaintext = AESGCM(key).decrypt(iv, ciphertext + auth_tag, None)
            return plaintext.decode("utf-8")
        except InvalidTag as e:
            raise AuthenticationFailedError() from e
        except (ValueError, UnicodeDecodeError) as e:
            raise AuthenticationFailedError(f"Malformed encrypted data: {e}") from e

    def encrypt_seed(self, phrase: str) -> EncryptedSeed:
        """Encrypt a seed phrase under a key derived from itself.

        Args:
            phrase: Validated seed phrase.

        Returns:
            EncryptedSeed with hex-encoded ciphertext+tag, iv and salt.
        """
        salt = secrets.token_bytes(SALT_LENGTH)
        key = self.derive_key(phrase, salt)
        ciphertext, iv, auth_tag = self.encrypt(phrase, key)
        return EncryptedSeed(
            ciphertext=(ciphertext + auth_tag).hex(),
            iv=iv.hex(),
            salt=salt.hex(),
        )

    def decrypt_seed(self, encrypted: EncryptedSeed, phrase: str) -> str:
        """Decrypt a stored seed using the phrase as key material.

        Raises:
            AuthenticationFailedError: If the phrase is wrong or the record
                was tampered with.
        """
        try:
            sealed = bytes.fromhex(encrypted.ciphertext)
            iv = bytes.fromhex(encrypted.iv)
            salt = bytes.fromhex(encrypted.salt)
        except ValueError as e:
            raise AuthenticationFailedError(f"Malformed encrypted seed: {e}") from e

        key = self.derive_key(phrase, salt)
        return self.decrypt(sealed[:-TAG_LENGTH], iv, sealed[-TAG_LENGTH:], key)

    def hash_pin(self, pin: str) -> tuple[str, str]:
        """Hash a PIN with a fresh salt.

        Returns:
            Tuple of (hash hex, salt hex).
        """
        salt = secrets.token_bytes(SALT_LENGTH)
        return self.derive_key(pin, salt).hex(), salt.hex()

    def verify_pin(self, pin: str, pin_hash: str, pin_salt: str) -> bool:
        """Check a PIN against its stored hash in constant time."""
        try:
            salt = bytes.fromhex(pin_salt)
            expected = bytes.fromhex(pin_hash)
        except ValueError:
            return False
        return hmac.compare_digest(self.derive_key(pin, salt), expected)
