"""
Wallet profile resolution.

The recovery core never stores keys. It asks a SignerResolver for signing
material once per request and drops it when the request ends. The default
resolver reads a JSON profile file on every lookup so key rotations are
picked up without a restart.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from eth_account import Account
from eth_account.signers.local import LocalAccount

from unstick.config import settings
from unstick.core.recovery.errors import (
    InvalidRequestError,
    ProfileNotFoundError,
    SigningMaterialError,
)


logger = logging.getLogger(__name__)


@dataclass
class SigningMaterial:
    """Signing capability for one account, valid for one request."""
    profile_id: str
    account: LocalAccount
    name: str = ""

    @property
    def address(self) -> str:
        return self.account.address

    def __repr__(self) -> str:
        return f"SigningMaterial(profile_id={self.profile_id!r}, address={self.address!r})"


class SignerResolver(Protocol):
    async def resolve(self, profile_id: str) -> Optional[SigningMaterial]:
        """Return signing material for profile_id, or None if unknown."""
        ...


def signing_material_from_key(profile_id: str, private_key: str, name: str = "") -> SigningMaterial:
    """Build SigningMaterial from a hex private key."""
    if not private_key:
        raise SigningMaterialError(f"Profile {profile_id} has no private key")
    try:
        account = Account.from_key(private_key)
    except Exception as e:
        # Never echo the key material back
        raise SigningMaterialError(
            f"Profile {profile_id} has an invalid private key ({type(e).__name__})"
        ) from None
    return SigningMaterial(profile_id=profile_id, account=account, name=name)


class JsonProfileStore:
    """
    Resolves profiles from a JSON file.

    Accepted layouts:
        {"profiles": [{"id": "...", "name": "...", "privateKey": "0x..."}]}
        {"<id>": {"name": "...", "privateKey": "0x..."}}
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or settings.profiles_path)

    def _load(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            logger.warning("Profile store %s does not exist", self.path)
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except json.JSONDecodeError as e:
            raise SigningMaterialError(f"Profile store {self.path} is not valid JSON: {e.msg}") from e

        if isinstance(raw, dict) and isinstance(raw.get("profiles"), list):
            return {
                str(p["id"]): p
                for p in raw["profiles"]
                if isinstance(p, dict) and p.get("id") is not None
            }
        if isinstance(raw, dict):
            return {str(k): v for k, v in raw.items() if isinstance(v, dict)}

        raise SigningMaterialError(f"Profile store {self.path} has an unsupported layout")

    async def resolve(self, profile_id: str) -> Optional[SigningMaterial]:
        profile = self._load().get(profile_id)
        if profile is None:
            return None
        private_key = profile.get("privateKey") or profile.get("private_key") or ""
        return signing_material_from_key(
            profile_id,
            private_key,
            name=str(profile.get("name", "")),
        )


async def resolve_signer(resolver: SignerResolver, profile_id: Optional[str]) -> SigningMaterial:
    """
    Resolve signing material or raise.

    Raises:
        InvalidRequestError: profile_id missing or blank
        ProfileNotFoundError: resolver knows nothing about profile_id
        SigningMaterialError: the stored key is unusable
    """
    if profile_id is None or not str(profile_id).strip():
        raise InvalidRequestError("profileId required")

    profile_id = str(profile_id).strip()
    material = await resolver.resolve(profile_id)
    if material is None:
        raise ProfileNotFoundError(profile_id)
    return material


_profile_store: Optional[JsonProfileStore] = None


def get_profile_store() -> JsonProfileStore:
    """Get the singleton profile store."""
    global _profile_store
    if _profile_store is None:
        _profile_store = JsonProfileStore()
    return _profile_store
