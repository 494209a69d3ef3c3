"""The home manager: configuration, contexts, cache status, credentials and data dirs."""

from __future__ import annotations

import copy
import dataclasses
import json
import logging
import os
import shutil
from enum import Enum
from typing import Any, Callable, Optional, TypeVar

from envforge.models import (
    AuthConfig,
    BuilderType,
    Context,
    EnvdAuth,
    EnvdContext,
    RunnerType,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".config", "envd")
DEFAULT_CACHE_DIR = os.path.join(os.path.expanduser("~"), ".cache", "envd")

_E = TypeVar("_E", bound=Enum)


def _default_context() -> EnvdContext:
    return EnvdContext(
        current="default",
        contexts=[
            Context(
                name="default",
                builder=BuilderType.DOCKER,
                builder_address="envd_buildkitd",
                runner=RunnerType.DOCKER,
                runner_address=None,
            )
        ],
    )


def _coerce(enum_cls: type[_E], value: Any, what: str) -> _E:
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"unknown {what} type") from None


def _write_json(path: str, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(data, fh)


def _load_state(path: str, what: str, dump: Callable[[], None]) -> Any:
    """Create the file from the current state if missing, then read it back."""
    if not os.path.exists(path):
        logger.debug("creating file %s", path)
        dump()
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"failed to decode {what} file {path}: {exc}") from exc


class HomeManager:
    """Keeps the user's persistent settings under a config and a cache directory."""

    def __init__(self, config_dir: Optional[str] = None, cache_dir: Optional[str] = None):
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self._cache_dir = cache_dir or DEFAULT_CACHE_DIR
        self._config_file = os.path.join(self.config_dir, "config.envd")
        self._context_file = os.path.join(self.config_dir, "contexts")
        self._auth_file = os.path.join(self.config_dir, "auth")
        self._cache_status_file = os.path.join(self._cache_dir, "cache.status")
        self._cache_map: dict[str, bool] = {}
        self._context = _default_context()
        self._auth = EnvdAuth()

    def init(self) -> None:
        """Create missing files and load the persisted state."""
        os.makedirs(self.config_dir, exist_ok=True)
        os.makedirs(self._cache_dir, exist_ok=True)

        if not os.path.exists(self._config_file):
            open(self._config_file, "a", encoding="utf-8").close()

        self._context = EnvdContext.from_dict(
            _load_state(self._context_file, "context", self._dump_context)
        )

        raw_cache = _load_state(self._cache_status_file, "cache status", self._dump_cache_status)
        if not isinstance(raw_cache, dict):
            raise ValueError(f"failed to decode cache status file {self._cache_status_file}")
        self._cache_map = {str(k): bool(v) for k, v in raw_cache.items()}

        self._auth = EnvdAuth.from_dict(_load_state(self._auth_file, "auth", self._dump_auth))

        logger.debug(
            "home manager initialized: cache-dir=%s config-file=%s context-file=%s",
            self._cache_dir,
            self._config_file,
            self._context_file,
        )

    # configuration

    def config_file(self) -> str:
        return self._config_file

    # contexts

    def context_file(self) -> str:
        return self._context_file

    def context_list(self) -> EnvdContext:
        return copy.deepcopy(self._context)

    def context_get_current(self) -> Context:
        for ctx in self._context.contexts:
            if ctx.name == self._context.current:
                return copy.deepcopy(ctx)
        raise LookupError("no current context")

    def context_create(self, context: Context, use: bool = False) -> None:
        if any(c.name == context.name for c in self._context.contexts):
            raise ValueError(f'context "{context.name}" already exists')
        builder = _coerce(BuilderType, context.builder, "builder")
        runner = _coerce(RunnerType, context.runner, "runner")
        self._context.contexts.append(
            dataclasses.replace(context, builder=builder, runner=runner)
        )
        if use:
            self.context_use(context.name)
        else:
            self._dump_context()

    def context_remove(self, name: str) -> None:
        for index, ctx in enumerate(self._context.contexts):
            if ctx.name == name:
                if self._context.current == name:
                    raise ValueError(f'cannot remove current context "{name}"')
                del self._context.contexts[index]
                self._dump_context()
                return
        raise LookupError(f'cannot find context "{name}"')

    def context_use(self, name: str) -> None:
        if not any(c.name == name for c in self._context.contexts):
            raise LookupError(f'context "{name}" does not exist')
        self._context.current = name
        self._dump_context()

    def _dump_context(self) -> None:
        _write_json(self._context_file, self._context.to_dict())

    # cache

    def cache_dir(self) -> str:
        return self._cache_dir

    def mark_cache(self, key: str, cached: bool) -> None:
        self._cache_map[key] = cached
        self._dump_cache_status()

    def cached(self, key: str) -> bool:
        return self._cache_map.get(key, False)

    def clean_cache(self) -> None:
        if not self._cache_dir:
            return
        logger.debug("cleaning up host cache directory")
        shutil.rmtree(self._cache_dir, ignore_errors=False) if os.path.exists(
            self._cache_dir
        ) else None

    def _dump_cache_status(self) -> None:
        _write_json(self._cache_status_file, self._cache_map)

    # auth

    def auth_file(self) -> str:
        return self._auth_file

    def auth_get_current(self) -> AuthConfig:
        for auth in self._auth.auth:
            if auth.name == self._auth.current:
                return copy.deepcopy(auth)
        raise LookupError("cannot find the current auth config")

    def auth_create(self, auth: AuthConfig, use: bool = False) -> None:
        if any(a.name == auth.name for a in self._auth.auth):
            # Creating an existing credential is a no-op.
            return
        self._auth.auth.append(copy.deepcopy(auth))
        if use:
            self.auth_use(auth.name)
        else:
            self._dump_auth()

    def auth_use(self, name: str) -> None:
        if not any(a.name == name for a in self._auth.auth):
            raise LookupError(f'auth config "{name}" does not exist')
        self._auth.current = name
        self._dump_auth()

    def _dump_auth(self) -> None:
        _write_json(self._auth_file, self._auth.to_dict())

    # data

    def init_data_dir(self, name: str) -> str:
        """Create (if needed) and return the host directory for a managed dataset."""
        path = os.path.join(self._cache_dir, "data", name)
        if os.path.exists(path):
            logger.info("Data dir %s already exists, skipping creation", path)
            return path
        try:
            os.makedirs(path, mode=0o777)
        except OSError as exc:
            raise OSError(f"failed to create data dir {path}: {exc}") from exc
        return path


_default_manager: Optional[HomeManager] = None


def initialize(config_dir: Optional[str] = None, cache_dir: Optional[str] = None) -> HomeManager:
    """Set up the shared manager (once per pair of directories) and load its state."""
    global _default_manager
    config_dir = config_dir or DEFAULT_CONFIG_DIR
    cache_dir = cache_dir or DEFAULT_CACHE_DIR
    if (
        _default_manager is None
        or _default_manager.config_dir != config_dir
        or _default_manager.cache_dir() != cache_dir
    ):
        _default_manager = HomeManager(config_dir, cache_dir)
    _default_manager.init()
    return _default_manager


def get_manager() -> HomeManager:
    """Return the shared manager set up by :func:`initialize`."""
    if _default_manager is None:
        raise RuntimeError("home manager is not initialized")
    return _default_manager