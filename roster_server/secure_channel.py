# roster_server/secure_channel.py

import base64
import json
import logging
import os
from typing import Any, Dict

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import HandshakeError
from .protocol import ENCRYPTED_PAYLOAD, make_envelope

logger = logging.getLogger(__name__)

AES_KEY_BYTES = 32
NONCE_BYTES = 12

_OAEP = padding.OAEP(
    mgf=padding.MGF1(algorithm=hashes.SHA256()),
    algorithm=hashes.SHA256(),
    label=None,
)


class SecureChannel:
    """
    AES-256-GCM encryption of envelopes for one session.
    GCM gives both confidentiality and integrity.
    """

    def __init__(self, aes_key: bytes):
        if len(aes_key) != AES_KEY_BYTES:
            raise ValueError("AES key must be 32 bytes for AES-256")
        self.aesgcm = AESGCM(aes_key)

    def encrypt(self, plaintext: str) -> str:
        """Returns base64(nonce + ciphertext)."""
        # Nonce must be unique per encryption
        nonce = os.urandom(NONCE_BYTES)
        ciphertext = self.aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("utf-8")

    def decrypt(self, encrypted_blob: str) -> str:
        """Reverses encrypt(). Raises ValueError on a bad key or tampered data."""
        try:
            raw = base64.b64decode(encrypted_blob)
            nonce, ciphertext = raw[:NONCE_BYTES], raw[NONCE_BYTES:]
            return self.aesgcm.decrypt(nonce, ciphertext, None).decode("utf-8")
        except Exception as e:
            logger.debug("Decryption failed: %s", e)
            raise ValueError("Failed to decrypt or authenticate message") from e

    def seal(self, envelope: Dict[str, Any]) -> Dict[str, Any]:
        """Wraps a plaintext envelope into an encrypted_payload envelope."""
        return make_envelope(ENCRYPTED_PAYLOAD, self.encrypt(json.dumps(envelope)))

    def unseal(self, frame: Dict[str, Any]) -> Dict[str, Any]:
        """Opens an encrypted_payload envelope. Raises ValueError if malformed."""
        if frame.get("type") != ENCRYPTED_PAYLOAD or not isinstance(frame.get("payload"), str):
            raise ValueError("Expected an encrypted_payload envelope")
        envelope = json.loads(self.decrypt(frame["payload"]))
        if not isinstance(envelope, dict):
            raise ValueError("Decrypted payload is not a JSON object")
        return envelope


class ServerKeyPair:
    """The server's RSA key pair used to receive session keys."""

    def __init__(self, key_size: int = 2048):
        self.private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        self.public_key_pem = self.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    def unwrap_session_key(self, encrypted_key_b64: str) -> bytes:
        try:
            return self.private_key.decrypt(base64.b64decode(encrypted_key_b64), _OAEP)
        except Exception as e:
            raise HandshakeError("Could not decrypt the session key") from e


def new_session_key() -> bytes:
    return os.urandom(AES_KEY_BYTES)


def wrap_session_key(public_key_pem: str, aes_key: bytes) -> str:
    """Encrypts a session key with the server's public key (client side)."""
    public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    return base64.b64encode(public_key.encrypt(aes_key, _OAEP)).decode("utf-8")
