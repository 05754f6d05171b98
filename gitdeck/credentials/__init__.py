"""Local credential vault for gitdeck."""

from gitdeck.credentials.store import STORAGE_KEY, CredentialStore, SavedCredential
from gitdeck.credentials.vault import EncryptedFileVault, load_or_create_key

__all__ = [
    "STORAGE_KEY",
    "CredentialStore",
    "SavedCredential",
    "EncryptedFileVault",
    "load_or_create_key",
]
