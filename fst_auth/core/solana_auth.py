"""
Solana Wallet Authentication Utilities

This module handles the cryptographic side of wallet authentication.
A Solana wallet address is the base58 encoding of a 32-byte ED25519 public key,
so proving ownership of an address means producing a valid detached ED25519
signature with the matching private key.

Authentication Flow:
1. Backend generates a random nonce -> generate_nonce()
2. Backend embeds the nonce in a login message (see challenge_store.py)
3. Frontend signs the message with the wallet (signMessage)
4. Frontend sends: walletAddress, signature
5. Backend verifies: verify_signature()

Wallets are inconsistent about signature encoding, some send base64 and some
base58, so both are accepted.
"""

import base64
import binascii
import secrets
from typing import Union

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey


NONCE_NUM_BYTES = 16  # 16 bytes = 32 hex characters
PUBLIC_KEY_NUM_BYTES = 32
SIGNATURE_NUM_BYTES = 64


def generate_nonce(num_bytes: int = NONCE_NUM_BYTES) -> str:
    """
    Generate a cryptographically secure random nonce for wallet authentication.

    Args:
        num_bytes: Number of random bytes to generate (default and minimum: 16 = 32 hex chars)

    Returns:
        Hex-encoded random string (e.g., "a1b2c3d4...")
    """
    if num_bytes < NONCE_NUM_BYTES:
        num_bytes = NONCE_NUM_BYTES
    return secrets.token_hex(num_bytes)


def decode_wallet_address(address: str) -> bytes:
    """
    Decode a base58 wallet address to its raw public key bytes.

    Raises:
        ValueError: If the address is not base58 or is not exactly 32 bytes
    """
    if not isinstance(address, str) or not address.strip():
        raise ValueError("Wallet address is required")
    public_key_bytes = base58.b58decode(address.strip())
    if len(public_key_bytes) != PUBLIC_KEY_NUM_BYTES:
        raise ValueError("Wallet address must decode to 32 bytes")
    return public_key_bytes


def is_valid_wallet_address(address: str) -> bool:
    try:
        decode_wallet_address(address)
    except ValueError:
        return False
    return True


def _decode_base64(value: str) -> bytes:
    """Helper: Decode base64 string to bytes."""
    return base64.b64decode(value, validate=True)


def _decode_signature(signature: Union[str, bytes]) -> bytes:
    """
    Helper: Decode a signature sent as raw bytes, base64 or base58.

    Base64 is tried first. Every base58 character is also a base64 character,
    so a base64 result is only accepted when it has the length of a signature.
    """
    if isinstance(signature, (bytes, bytearray)):
        signature_bytes = bytes(signature)
    else:
        value = signature.strip()
        try:
            signature_bytes = _decode_base64(value)
        except (binascii.Error, ValueError):
            signature_bytes = b""
        if len(signature_bytes) != SIGNATURE_NUM_BYTES:
            signature_bytes = base58.b58decode(value)

    if len(signature_bytes) != SIGNATURE_NUM_BYTES:
        raise ValueError("Signature must decode to 64 bytes")
    return signature_bytes


def verify_signature(address: str, message: str, signature: Union[str, bytes]) -> bool:
    """
    Verify a detached ED25519 signature over a UTF-8 message.

    This is the check called by the /auth/verify endpoint. Malformed input never
    raises, it simply fails verification.

    Args:
        address: base58 wallet address (the signer's public key)
        message: The exact message text that was signed
        signature: ED25519 signature (base64, base58 or raw bytes)

    Returns:
        True if the signature is valid for the message under the address key

    Example:
        if verify_signature(
            address="9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin",
            message=challenge.message,
            signature="sig_base64_or_base58",
        ):
            # Create JWT token for address
    """
    try:
        public_key_bytes = decode_wallet_address(address)
        signature_bytes = _decode_signature(signature)
        message_bytes = message.encode("utf-8")
        Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature_bytes, message_bytes)
    except (InvalidSignature, ValueError, TypeError, AttributeError):
        return False
    return True
