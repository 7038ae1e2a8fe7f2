import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from foliovault.app.core.config import settings
from foliovault.app.exceptions import DecryptionError, EncryptionConfigError

IV_LENGTH = 12
AUTH_TAG_LENGTH = 16


def hash_api_token(raw_token: str) -> str:
    """Hash a bearer token using SHA256.

    Args:
        raw_token: The raw token to hash

    Returns:
        The SHA256 hex digest of the token
    """
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def generate_api_token(nbytes: int = 32) -> str:
    """Generate a new random bearer token.

    Args:
        nbytes: Number of random bytes to use as input entropy.

    Returns:
        A URL-safe token string.
    """
    return secrets.token_urlsafe(nbytes)


def mask_key(key: str) -> str:
    """Show only the first and last four characters of a key."""
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}****{key[-4:]}"


# ============================================
# Exchange credential encryption (AES-256-GCM)
# ============================================


def _get_encryption_key(key_hex: str | None = None) -> bytes:
    """Return the 32-byte AES key from settings (or an explicit hex key)."""
    key = key_hex if key_hex is not None else settings.encryption_key
    if not key:
        raise EncryptionConfigError(
            "ENCRYPTION_KEY is not set. Generate one with: "
            'python -c "from foliovault.app.core.security import generate_encryption_key; '
            'print(generate_encryption_key())"'
        )
    if len(key) != 64:
        raise EncryptionConfigError("ENCRYPTION_KEY must be a 64-character hex string (32 bytes).")
    try:
        return bytes.fromhex(key)
    except ValueError as e:
        raise EncryptionConfigError("ENCRYPTION_KEY must be a 64-character hex string (32 bytes).") from e


def encrypt_secret(plaintext: str, key_hex: str | None = None) -> str:
    """Encrypt a secret for storage.

    Output is hex of ``iv (12 bytes) + auth tag (16 bytes) + ciphertext``.

    Args:
        plaintext: The plain text secret
        key_hex: Optional key override (for testing)

    Returns:
        Hex encoded encrypted string
    """
    aesgcm = AESGCM(_get_encryption_key(key_hex))
    iv = secrets.token_bytes(IV_LENGTH)
    # AESGCM appends the tag to the ciphertext; stored layout puts it first.
    sealed = aesgcm.encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return (iv + tag + ciphertext).hex()


def decrypt_secret(encrypted_hex: str, key_hex: str | None = None) -> str:
    """Decrypt a secret produced by encrypt_secret.

    Args:
        encrypted_hex: The encrypted hex string
        key_hex: Optional key override (for testing)

    Returns:
        Plain text secret

    Raises:
        DecryptionError: If the data is corrupt or the key is wrong
    """
    aesgcm = AESGCM(_get_encryption_key(key_hex))
    try:
        data = bytes.fromhex(encrypted_hex)
    except ValueError as e:
        raise DecryptionError("Encrypted value is not valid hex") from e

    if len(data) < IV_LENGTH + AUTH_TAG_LENGTH:
        raise DecryptionError("Encrypted value is too short")

    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH:IV_LENGTH + AUTH_TAG_LENGTH]
    ciphertext = data[IV_LENGTH + AUTH_TAG_LENGTH:]
    try:
        plaintext = aesgcm.decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise DecryptionError("Failed to decrypt value (wrong key or corrupt data)") from e
    return plaintext.decode("utf-8")


def generate_encryption_key() -> str:
    """Generate a new encryption key for .env file.

    Run: python -c "from foliovault.app.core.security import generate_encryption_key; print(generate_encryption_key())"
    """
    return secrets.token_hex(32)
