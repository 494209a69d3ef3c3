"""Editor extension references and marketplace lookups."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

VENDOR_VSCODE_TEMPLATE = (
    "https://%s.gallery.vsassets.io/_apis/public/gallery/publisher/%s/extension/%s/%s/"
    "assetbyname/Microsoft.VisualStudio.Services.VSIXPackage"
)
VENDOR_OPENVSX_TEMPLATE = "https://open-vsx.org/api/%s/%s/latest"

_DIGITS = "0123456789"


class MarketplaceVendor(str, Enum):
    """Where extensions are downloaded from."""

    VSCODE = "vscode"
    OPENVSX = "openvsx"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Plugin:
    """An editor extension, optionally pinned to a version."""

    publisher: str
    extension: str
    version: Optional[str] = None

    def __str__(self) -> str:
        if self.version is not None:
            return f"{self.publisher}.{self.extension}-{self.version}"
        return f"{self.publisher}.{self.extension}"


def parse_plugin(p: str) -> Plugin:
    """Parse ``publisher.extension[-version]``; the version must start with a digit."""
    index_publisher = p.find(".")
    if index_publisher == -1:
        raise ValueError("invalid publisher")
    publisher = p[:index_publisher]

    relative = p[index_publisher:].rfind("-")
    if relative != -1:
        index_extension = index_publisher + relative
        version = p[index_extension + 1:]
        if version[:1] and version[:1] in _DIGITS:
            extension = p[index_publisher + 1:index_extension]
            logger.debug(
                "plugin parsed: publisher=%s extension=%s version=%s",
                publisher,
                extension,
                version,
            )
            return Plugin(publisher, extension, version)

    extension = p[index_publisher + 1:]
    logger.debug(
        "plugin parsed without version: publisher=%s extension=%s", publisher, extension
    )
    return Plugin(publisher, extension)


def get_latest_version_url(plugin: Plugin) -> str:
    """Ask the open marketplace for the download URL of the plugin's latest version."""
    latest_url = VENDOR_OPENVSX_TEMPLATE % (plugin.publisher, plugin.extension)
    try:
        with urllib.request.urlopen(latest_url) as resp:
            status = getattr(resp, "status", 200)
            if status != 200:
                reason = getattr(resp, "reason", "")
                raise RuntimeError(f"failed to get latest version: {status} {reason}")
            body = resp.read()
    except urllib.error.HTTPError as exc:
        raise RuntimeError(
            f"failed to get latest version: {exc.code} {exc.reason}"
        ) from exc
    except urllib.error.URLError as exc:
        raise RuntimeError(f"failed to get latest version: {exc.reason}") from exc

    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError) as exc:
        raise RuntimeError(f"failed to decode response: {exc}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError("failed to decode response: expected an object")

    files = payload.get("files")
    if files is None:
        raise RuntimeError("failed to get latest version: no files")
    if not isinstance(files, dict):
        raise RuntimeError("failed to get latest version: malformed files")
    download = files.get("download")
    if download is None:
        raise RuntimeError("failed to get latest version: no download url")
    if not isinstance(download, str):
        raise RuntimeError("failed to get latest version: malformed download url")
    return download