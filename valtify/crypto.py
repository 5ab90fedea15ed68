# valtify/crypto.py: vault item payload encryption
#
# Strategy:
#   - One 256-bit master key per deployment, from VALTIFY_VAULT_KEY or a key file
#     (generated on first run). It is never written next to the ciphertext.
#   - Each account gets its own key: HKDF-SHA256(master, info="valtify-item-v1:<account id>")
#   - The account id is also bound as AES-GCM associated data, so a blob copied
#     into another account's rows fails authentication.
#   - Format stored in DB: base64( IV [12 bytes] + ciphertext + GCM tag [16 bytes] )

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from valtify.errors import ConfigurationError, PayloadError

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_CONTEXT = "valtify-item-v1:"


# ── Key persistence ────────────────────────────────────────────────────────────

def _read_key(path: str) -> bytes:
    with open(path, "rb") as f:
        key = f.read()
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"{path} exists but contains {len(key)} bytes (expected {KEY_LENGTH}). File may be corrupt."
        )
    return key


def load_or_create_key(path: str) -> bytes:
    """Load the AES-256 master key from ``path``, or generate and save it on first run."""
    if os.path.exists(path):
        return _read_key(path)

    key = os.urandom(KEY_LENGTH)
    # The key is written to a private temp file and linked into place, so
    # other workers never see a partially written key file.
    tmp_path = f"{path}.{os.getpid()}.tmp"
    fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        os.link(tmp_path, path)
    except FileExistsError:
        logger.info("Key file %s was created by another worker, loading it", path)
        return _read_key(path)
    finally:
        os.unlink(tmp_path)

    logger.warning(
        "New vault master key generated at %s - back this file up, losing it means losing all vault data",
        os.path.abspath(path),
    )
    return key


def decode_master_key(value: str) -> bytes:
    """Decode a base64 master key from configuration."""
    try:
        key = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ConfigurationError("VALTIFY_VAULT_KEY is not valid base64") from exc
    if len(key) != KEY_LENGTH:
        raise ConfigurationError(
            f"VALTIFY_VAULT_KEY decodes to {len(key)} bytes (expected {KEY_LENGTH})"
        )
    return key


def resolve_master_key(vault_key: str | None, key_file: str) -> bytes:
    if vault_key:
        return decode_master_key(vault_key)
    return load_or_create_key(key_file)


# ── Encrypt / Decrypt ──────────────────────────────────────────────────────────

class PayloadCodec:
    """Encrypts item payloads under a key derived for the owning account."""

    def __init__(self, master_key: bytes):
        if len(master_key) != KEY_LENGTH:
            raise ConfigurationError(f"master key must be {KEY_LENGTH} bytes")
        self._master_key = master_key

    def _account_key(self, account_id: str) -> bytes:
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_LENGTH,
            salt=None,
            info=(KEY_CONTEXT + account_id).encode("utf-8"),
        )
        return hkdf.derive(self._master_key)

    def encode(self, account_id: str, plaintext: str) -> str:
        """
        Encrypt a UTF-8 string for ``account_id`` with AES-256-GCM.
        Returns base64( iv[12] + ciphertext + tag[16] )
        """
        iv = os.urandom(NONCE_SIZE)
        aesgcm = AESGCM(self._account_key(account_id))
        ciphertext_and_tag = aesgcm.encrypt(
            iv, plaintext.encode("utf-8"), account_id.encode("utf-8")
        )
        return base64.b64encode(iv + ciphertext_and_tag).decode("ascii")

    def decode(self, account_id: str, stored: str) -> str:
        """
        Decrypt a blob produced by encode() for the same account.

        Raises:
            PayloadError: if the blob is malformed, tampered with, or was
                encrypted for a different account
        """
        try:
            combined = base64.b64decode(stored, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise PayloadError() from exc

        if len(combined) < NONCE_SIZE + TAG_SIZE:
            raise PayloadError()

        iv = combined[:NONCE_SIZE]
        ciphertext_and_tag = combined[NONCE_SIZE:]

        aesgcm = AESGCM(self._account_key(account_id))
        try:
            plaintext_bytes = aesgcm.decrypt(iv, ciphertext_and_tag, account_id.encode("utf-8"))
        except InvalidTag as exc:
            raise PayloadError() from exc
        return plaintext_bytes.decode("utf-8")
