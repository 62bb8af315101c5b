"""
Signing keys for Cosmos transactions.

Keys are BIP-39 mnemonics derived along a BIP-32 path (Cosmos coin type
118 by default). The mnemonic can be passed directly or read from a
``.env`` file as ``MNEMONIC``.

DO NOT USE MNEMONIC KEYS FOR MAINNET.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Optional

from bip_utils import Bip32PathError, Bip32Slip10Secp256k1, Bip39MnemonicValidator, Bip39SeedGenerator
from cosmpy.crypto.address import Address
from cosmpy.crypto.keypairs import PrivateKey
from dotenv import load_dotenv

from ..client.errors import CryptoError, DerivationPathError, MnemonicError

DEFAULT_DERIVATION_PATH = "m/44'/118'/0'/0/0"
DEFAULT_ENV_PATH = Path.home() / ".cosm-orc" / ".env"


@dataclass(frozen=True)
class Mnemonic:
    phrase: str = field(repr=False)


# Only mnemonic credentials are supported for now.
Key = Mnemonic


@dataclass(frozen=True)
class SigningKey:
    """
    A named transaction signer.

    Attributes:
        name: Human readable key name
        key: Credential the private key is derived from
        derivation_path: BIP-32 derivation path
    """

    name: str
    key: Key
    derivation_path: str = DEFAULT_DERIVATION_PATH

    @cached_property
    def _private_key(self) -> PrivateKey:
        phrase = " ".join(self.key.phrase.split())
        if not Bip39MnemonicValidator().IsValid(phrase):
            raise MnemonicError()

        seed = Bip39SeedGenerator(phrase).Generate()
        try:
            ctx = Bip32Slip10Secp256k1.FromSeedAndPath(seed, self.derivation_path)
        except Bip32PathError as exc:
            raise DerivationPathError(self.derivation_path) from exc
        except ValueError as exc:
            raise CryptoError(f"key derivation failed for {self.name!r}: {exc}") from exc

        return PrivateKey(ctx.PrivateKey().Raw().ToBytes())

    @property
    def public_key_bytes(self) -> bytes:
        """Compressed secp256k1 public key (33 bytes)."""
        return self._private_key.public_key.public_key_bytes

    def to_account_id(self, prefix: str) -> str:
        """Bech32 account address for ``prefix`` (e.g. ``juno1...``)."""
        return str(Address(self._private_key.public_key, prefix))

    def sign(self, message: bytes) -> bytes:
        """Sign ``sha256(message)``; returns the 64-byte compact signature."""
        try:
            return self._private_key.sign(message, deterministic=True, canonicalise=True)
        except Exception as exc:
            raise CryptoError(f"signing failed for {self.name!r}: {exc}") from exc

    @classmethod
    def from_env(
        cls,
        name: str,
        env_path: Optional[Path] = None,
        derivation_path: str = DEFAULT_DERIVATION_PATH,
    ) -> "SigningKey":
        return cls(name=name, key=Mnemonic(load_mnemonic(env_path)), derivation_path=derivation_path)


def load_mnemonic(env_path: Optional[Path] = None) -> str:
    """
    Load the signer mnemonic from a .env file or the environment.

    Args:
        env_path: Path to .env file (default: ~/.cosm-orc/.env)

    Returns:
        The mnemonic phrase

    Raises:
        MnemonicError: If MNEMONIC is not set
    """
    env_path = env_path or DEFAULT_ENV_PATH
    if env_path.exists():
        load_dotenv(env_path, override=True)

    phrase = os.environ.get("MNEMONIC")
    if not phrase:
        raise MnemonicError()
    return phrase
