"""Download and caching of editor extensions."""

from __future__ import annotations

import logging
import os
import shutil
import urllib.request
import zipfile
from typing import Optional, Union

from envforge.home import HomeManager, get_manager
from envforge.plugin import (
    VENDOR_VSCODE_TEMPLATE,
    MarketplaceVendor,
    Plugin,
    get_latest_version_url,
)

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "vscode-plugins"


class MarketplaceClient:
    """Fetches extensions from one marketplace into the home cache directory."""

    def __init__(
        self,
        vendor: Union[MarketplaceVendor, str],
        manager: Optional[HomeManager] = None,
    ):
        try:
            self.vendor = MarketplaceVendor(vendor)
        except ValueError:
            raise ValueError(f"unknown marketplace vendor {vendor}") from None
        self._manager = manager

    @property
    def manager(self) -> HomeManager:
        return self._manager if self._manager is not None else get_manager()

    def plugin_path(self, plugin: Plugin) -> str:
        """Path of the extension's files inside the unpacked archive directory."""
        return f"{plugin}/extension/"

    def unzip_path(self, plugin: Plugin) -> str:
        """Directory the extension archive is unpacked into."""
        return f"{self.manager.cache_dir()}/{plugin}"

    def download_or_cache(self, plugin: Plugin) -> bool:
        """Make the plugin available locally; return True if it was already cached."""
        manager = self.manager
        cache_key = f"{CACHE_KEY_PREFIX}-{plugin}"
        if manager.cached(cache_key):
            logger.debug("plugin %s already exists in cache %s", plugin, cache_key)
            return True

        cache_dir = manager.cache_dir()
        if self.vendor is MarketplaceVendor.VSCODE:
            if plugin.version is None:
                raise ValueError("version is required for vscode marketplace")
            url = VENDOR_VSCODE_TEMPLATE % (
                plugin.publisher,
                plugin.publisher,
                plugin.extension,
                plugin.version,
            )
            filename = f"{cache_dir}/{plugin.publisher}.{plugin.extension}-{plugin.version}.vsix"
        else:
            try:
                url = get_latest_version_url(plugin)
            except RuntimeError as exc:
                raise RuntimeError(f"failed to get latest version url: {exc}") from exc
            filename = f"{cache_dir}/{plugin.publisher}.{plugin.extension}.vsix"

        logger.debug("downloading plugin %s from %s to %s", plugin, url, filename)
        with open(filename, "wb") as out:
            with urllib.request.urlopen(url) as resp:
                shutil.copyfileobj(resp, out)

        try:
            with zipfile.ZipFile(filename) as archive:
                archive.extractall(self.unzip_path(plugin))
        except (zipfile.BadZipFile, OSError) as exc:
            raise RuntimeError(f"failed to unzip: {exc}") from exc

        manager.mark_cache(cache_key, True)
        return False