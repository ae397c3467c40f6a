"""
crypto — encryption boundary for preset commands.

Public API
──────────
CommandCipher       — AES-256-GCM encrypt/decrypt of command strings
load_or_create_key  — durable key provisioning (key file or passphrase)
KeySource           — which of the two provisioned the key
"""

from cmdset.crypto.cipher import CommandCipher
from cmdset.crypto.keys import KeySource, derive_key, load_or_create_key

__all__ = ["CommandCipher", "KeySource", "derive_key", "load_or_create_key"]
