"""Namespace-keyed signing key table."""

from typing import Dict, Iterable, List, Mapping

from .records import SigningKey, SigningKeys


class SigningKeyTable:
    """
    Signing keys per registry namespace.

    Keys are looked up at response time and never stored in cache records,
    so rotating a key does not require invalidating any cached version data.
    """

    def __init__(self, keys: Mapping[str, Iterable[SigningKey]]):
        self._keys: Dict[str, List[SigningKey]] = {
            namespace: list(entries) for namespace, entries in keys.items()
        }

    @classmethod
    def from_config(cls, raw: Mapping[str, Iterable[Mapping[str, str]]]) -> "SigningKeyTable":
        """Build a table from the validated SIGNING_KEYS configuration mapping."""
        return cls(
            {
                namespace: [
                    SigningKey(key_id=entry["key_id"], ascii_armor=entry["ascii_armor"])
                    for entry in entries
                ]
                for namespace, entries in raw.items()
            }
        )

    def keys_for(self, namespace: str) -> SigningKeys:
        """Return the keys for `namespace`; an unknown namespace has no keys."""
        return SigningKeys(gpg_public_keys=tuple(self._keys.get(namespace, ())))
