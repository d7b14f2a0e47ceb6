"""
Asset Resolution

Maps a release's asset list to the files a platform needs: the binary archive,
the checksum manifest and its signature. Matching is by name suffix because
asset names embed the project name and version, which differ per provider.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence

from provider_registry.constants import DEFAULT_PROTOCOLS, ZIP_EXTENSION
from provider_registry.log_utils import logger

from .interfaces import Asset
from .records import Platform

_SHASUM_LINE_RX = re.compile(r"^([0-9a-fA-F]{64})\s+\*?(\S+)$")
_PLATFORM_ARCHIVE_RX = re.compile(
    r"_(?P<os>[a-z0-9]+)_(?P<arch>[a-z0-9]+)" + re.escape(ZIP_EXTENSION) + r"$"
)


def find_asset_by_suffix(assets: Sequence[Asset], suffix: str) -> Optional[Asset]:
    """
    Return the first asset whose name ends with `suffix`.

    Parameters:
        assets (Sequence[Asset]): Assets of one release.
        suffix (str): Name suffix, e.g. "_linux_amd64.zip" or "SHA256SUMS".

    Returns:
        Optional[Asset]: The matching asset, or None if no asset matches.
    """
    for asset in assets:
        if asset.name.endswith(suffix):
            logger.debug(f"Asset found for suffix {suffix}: {asset.name}")
            return asset
    logger.debug(f"Asset not found for suffix {suffix}")
    return None


def platform_archive_suffix(platform: Platform) -> str:
    return f"_{platform.os}_{platform.arch}{ZIP_EXTENSION}"


def discover_platforms(assets: Iterable[Asset]) -> List[Platform]:
    """
    List the platforms a release ships archives for, in asset order.

    Archives follow the `<project>_<version>_<os>_<arch>.zip` convention; other
    assets are ignored.
    """
    platforms: List[Platform] = []
    for asset in assets:
        match = _PLATFORM_ARCHIVE_RX.search(asset.name)
        if not match:
            continue
        platform = Platform(os=match.group("os"), arch=match.group("arch"))
        if platform not in platforms:
            platforms.append(platform)
    return platforms


def parse_shasums(content: str) -> Dict[str, str]:
    """
    Parse a SHA256SUMS manifest.

    Lines have the form `<sha256 hex>  <filename>` (a leading `*` on the filename
    marks binary mode and is dropped). Malformed lines are skipped.

    Returns:
        Dict[str, str]: Filename to lowercase hex digest.
    """
    checksums: Dict[str, str] = {}
    for line in content.splitlines():
        match = _SHASUM_LINE_RX.match(line.strip())
        if match:
            checksums[match.group(2)] = match.group(1).lower()
    return checksums


def parse_protocols(manifest: Any) -> List[str]:
    """
    Read supported protocol versions from a registry manifest.

    The manifest is the JSON document published as `*_manifest.json`:
    `{"version": 1, "metadata": {"protocol_versions": ["6.0"]}}`.

    Parameters:
        manifest (Any): Raw manifest text or an already decoded mapping.

    Returns:
        List[str]: Protocol versions, or the default protocols when the manifest does not declare any.
    """
    if isinstance(manifest, (str, bytes)):
        try:
            manifest = json.loads(manifest)
        except ValueError:
            logger.warning("Registry manifest is not valid JSON; using default protocols")
            return list(DEFAULT_PROTOCOLS)

    metadata = manifest.get("metadata") if isinstance(manifest, dict) else None
    protocols = metadata.get("protocol_versions") if isinstance(metadata, dict) else None
    if not isinstance(protocols, list) or not protocols:
        return list(DEFAULT_PROTOCOLS)
    return [str(p) for p in protocols]
