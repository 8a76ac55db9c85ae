"""
Transaction Signer - signs transactions and derives addresses.

Signatures are deterministic (RFC 6979) secp256k1 ECDSA signatures over the
transaction's signing hash, normalized to a low ``s`` value. Addresses are the
last 20 bytes of the Keccak-256 hash of the 64-byte public key.
"""

from pathlib import Path
from typing import Any, Optional

import structlog
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import (
    is_checksum_address,
    is_checksum_formatted_address,
    is_hex_address,
    keccak,
    to_canonical_address,
    to_checksum_address,
)

from offline_eth.config import OfflineEthConfig, get_config
from offline_eth.core.errors import (
    ConfigurationError,
    DecodeError,
    InvalidKeyError,
    InvalidSignatureError,
)
from offline_eth.core.transaction import FeeMarketTransaction, Signature, hex_to_bytes

# Order of the secp256k1 base point
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 64
UNCOMPRESSED_PREFIX = 0x04


# ============================================================================
# Keys and addresses
# ============================================================================

def validate_private_key(private_key: bytes) -> bytes:
    """
    Check that a private key is 32 bytes encoding a scalar in ``[1, n)``.

    Raises:
        InvalidKeyError: If it is not
    """
    if not isinstance(private_key, (bytes, bytearray)):
        raise InvalidKeyError("Private key must be bytes")
    if len(private_key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyError(
            f"Private key must be {PRIVATE_KEY_LENGTH} bytes, got {len(private_key)}"
        )
    scalar = int.from_bytes(private_key, "big")
    if not 0 < scalar < SECP256K1_N:
        raise InvalidKeyError("Private key is not a valid secp256k1 scalar")
    return bytes(private_key)


def parse_private_key(text: str) -> bytes:
    """Parse a hex private key, with or without ``0x``."""
    try:
        key = hex_to_bytes(text)
    except DecodeError as e:
        raise InvalidKeyError("Private key is not valid hex") from e
    return validate_private_key(key)


def derive_address(public_key: bytes) -> bytes:
    """
    Derive the 20-byte address of an uncompressed public key.

    Args:
        public_key: 64 bytes, or 65 bytes with the ``0x04`` format prefix

    Returns:
        The low-order 20 bytes of keccak256(public_key)
    """
    if len(public_key) == PUBLIC_KEY_LENGTH + 1 and public_key[0] == UNCOMPRESSED_PREFIX:
        public_key = public_key[1:]
    if len(public_key) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyError(
            f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        )
    return keccak(bytes(public_key))[-20:]


def private_key_to_address(private_key: bytes) -> bytes:
    """Derive the address controlled by a private key."""
    key = keys.PrivateKey(validate_private_key(private_key))
    return derive_address(key.public_key.to_bytes())


def format_address(address: bytes) -> str:
    """EIP-55 checksummed hex form of a 20-byte address."""
    return to_checksum_address(address)


def parse_address(text: str) -> bytes:
    """
    Parse a hex address.

    Mixed-case input must carry a valid EIP-55 checksum.

    Raises:
        ConfigurationError: If the text is not a valid address
    """
    candidate = text.strip()
    if not is_hex_address(candidate):
        raise ConfigurationError(f"Not a hex address: {text!r}")
    if is_checksum_formatted_address(candidate) and not is_checksum_address(candidate):
        raise ConfigurationError(f"Address has an invalid checksum: {text}")
    return to_canonical_address(candidate)


# ============================================================================
# Signing and recovery
# ============================================================================

def sign_transaction(tx: FeeMarketTransaction, private_key: bytes) -> FeeMarketTransaction:
    """
    Sign a transaction's unsigned body.

    Args:
        tx: Transaction to sign; an existing signature is replaced
        private_key: 32-byte secp256k1 private key

    Returns:
        A new transaction carrying the signature

    Raises:
        InvalidKeyError: If the key is malformed
    """
    key = keys.PrivateKey(validate_private_key(private_key))
    signature = key.sign_msg_hash(tx.signing_hash())
    return tx.with_signature(Signature(
        y_parity=signature.v,
        r=signature.r,
        s=signature.s,
    ))


def validate_signature(signature: Signature) -> None:
    """
    Reject signatures outside the canonical range.

    Raises:
        InvalidSignatureError: If ``r`` is not in ``[1, n)`` or ``s`` is not
            in the lower half of the curve order
    """
    if not 0 < signature.r < SECP256K1_N:
        raise InvalidSignatureError("Signature r is out of range")
    if not 0 < signature.s <= SECP256K1_N // 2:
        raise InvalidSignatureError("Signature s is not in the lower half of the curve order")


def recover_address(tx: FeeMarketTransaction) -> bytes:
    """
    Recover the sender address from a signed transaction.

    Raises:
        InvalidSignatureError: If the transaction is unsigned, the signature
            is non-canonical, or it does not recover to a curve point
    """
    if tx.signature is None:
        raise InvalidSignatureError("Transaction is not signed")
    validate_signature(tx.signature)

    try:
        signature = keys.Signature(vrs=(tx.signature.y_parity, tx.signature.r, tx.signature.s))
        public_key = signature.recover_public_key_from_msg_hash(tx.signing_hash())
    except (BadSignature, ValidationError) as e:
        raise InvalidSignatureError(f"Signature does not recover a public key: {e}") from e

    return derive_address(public_key.to_bytes())


# ============================================================================
# Key holder
# ============================================================================

class TransactionSigner:
    """
    Holds a private key and signs transactions with it.

    Supports loading keys from:
    - A hex string
    - A file containing the hex key (for air-gapped media)
    - The configured key path

    The key itself is never logged.
    """

    def __init__(
        self,
        config: Optional[OfflineEthConfig] = None,
        logger: Optional[Any] = None,
    ):
        """
        Initialize the signer.

        Args:
            config: Configuration, uses the global config if not provided
            logger: structlog logger, uses the module logger if not provided
        """
        self.config = config or get_config()
        self.logger = logger or structlog.get_logger(__name__)
        self._private_key: Optional[bytes] = None
        self._address: Optional[bytes] = None

    def load_key_from_hex(self, key_hex: str) -> None:
        """Load a hex private key."""
        self._set_key(parse_private_key(key_hex))
        self.logger.info("signing_key_loaded", address=self.address_str)

    def load_key_from_file(self, key_path: str) -> None:
        """
        Load a hex private key from a file.

        Args:
            key_path: Path to a file whose content is the hex key
        """
        path = Path(key_path)
        if not path.exists():
            raise FileNotFoundError(f"Signing key file not found: {key_path}")

        self._set_key(parse_private_key(path.read_text(encoding="utf-8")))
        self.logger.info("signing_key_loaded", path=key_path, address=self.address_str)

    def load_from_config(self) -> None:
        """Load the signing key from configuration."""
        if not self.config.private_key_path:
            raise ConfigurationError("No signing key configured")
        self.load_key_from_file(self.config.private_key_path)

    def _set_key(self, private_key: bytes) -> None:
        self._private_key = private_key
        self._address = private_key_to_address(private_key)

    @property
    def address(self) -> Optional[bytes]:
        return self._address

    @property
    def address_str(self) -> Optional[str]:
        """Checksummed address, or None when no key is loaded."""
        return format_address(self._address) if self._address else None

    @property
    def is_loaded(self) -> bool:
        return self._private_key is not None

    def sign(self, tx: FeeMarketTransaction) -> FeeMarketTransaction:
        """
        Sign a transaction with the loaded key.

        Args:
            tx: The transaction to sign

        Returns:
            Signed transaction
        """
        if not self._private_key:
            raise RuntimeError("No signing key loaded")

        if tx.is_signed:
            self.logger.warning("replacing_existing_signature", tx_hash="0x" + tx.hash().hex())

        signed_tx = sign_transaction(tx, self._private_key)
        self.logger.debug(
            "transaction_signed",
            signer=self.address_str,
            tx_hash="0x" + signed_tx.hash().hex(),
        )
        return signed_tx
