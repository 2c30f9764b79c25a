"""
Wallet Profiles

Resolves signing material for a profile id, once per request:
- SignerResolver: protocol implemented by credential stores
- JsonProfileStore: default resolver backed by a JSON file
"""

from .profiles import (
    SigningMaterial,
    SignerResolver,
    JsonProfileStore,
    resolve_signer,
    signing_material_from_key,
    get_profile_store,
)

__all__ = [
    "SigningMaterial",
    "SignerResolver",
    "JsonProfileStore",
    "resolve_signer",
    "signing_material_from_key",
    "get_profile_store",
]
