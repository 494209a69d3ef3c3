"""Parsing of build options: cache import/export, outputs, manifest refs and image config."""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import platform
import sys
from dataclasses import dataclass, field
from typing import IO, Callable, Iterable, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FILE = "build.envd"
DEFAULT_FUNC = "build"

EXPORTER_IMAGE = "image"
EXPORTER_LOCAL = "local"
EXPORTER_DOCKER = "docker"
EXPORTER_OCI = "oci"
EXPORTER_TAR = "tar"

DEFAULT_PATH_ENV_UNIX = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
DEFAULT_PATH_ENV_WINDOWS = "c:\\Windows\\System32;c:\\Windows"

OutputFactory = Callable[[Mapping[str, str]], IO]


@dataclass
class CacheOptionsEntry:
    """A cache import or export specification."""

    type: str
    attrs: dict[str, str] = field(default_factory=dict)


@dataclass
class ExportEntry:
    """An image exporter: its type, attributes and destination."""

    type: str
    attrs: dict[str, str] = field(default_factory=dict)
    output: Optional[OutputFactory] = field(default=None, compare=False)
    output_dir: str = ""


def _read_csv_fields(s: str) -> list[str]:
    try:
        return next(csv.reader(io.StringIO(s)))
    except StopIteration:
        raise ValueError("EOF") from None
    except csv.Error as exc:
        raise ValueError(str(exc)) from exc


def _parse_csv_entry(s: str, flag: str) -> tuple[str, dict[str, str]]:
    entry_type = ""
    attrs: dict[str, str] = {}
    for item in _read_csv_fields(s):
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"invalid value {item}")
        key = key.lower()
        if key == "type":
            logger.debug("adding type %s into %s entry", value, flag)
            entry_type = value
        else:
            logger.debug("adding key %s=%s into %s entry", key, value, flag)
            attrs[key] = value
    if not entry_type:
        raise ValueError(f"{flag} requires type=<type>")
    return entry_type, attrs


def parse_import_cache(import_caches: Iterable[str]) -> list[CacheOptionsEntry]:
    """Parse --import-cache values."""
    imports: list[CacheOptionsEntry] = []
    for import_cache in import_caches:
        if "type=" not in import_cache:
            logger.warning(
                "--import-cache <ref> is deprecated. Please use --import-cache "
                "type=registry,ref=<ref>,<opt>=<optval>[,<opt>=<optval>] instead."
            )
            imports.append(CacheOptionsEntry("registry", {"ref": import_cache}))
        else:
            entry_type, attrs = _parse_csv_entry(import_cache, "--import-cache")
            imports.append(CacheOptionsEntry(entry_type, attrs))
    return imports


def _attr_map(items: Iterable[str]) -> dict[str, str]:
    result: dict[str, str] = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep:
            raise ValueError(f"invalid value {item}")
        result[key] = value
    return result


def parse_export_cache(
    export_caches: Sequence[str],
    legacy_export_cache_opts: Optional[Sequence[str]] = None,
) -> list[CacheOptionsEntry]:
    """Parse --export-cache values, with the legacy --export-cache-opt values."""
    legacy_opts = list(legacy_export_cache_opts or [])
    if legacy_opts and len(export_caches) != 1:
        raise ValueError("--export-cache-opt requires exactly single --export-cache")
    exports: list[CacheOptionsEntry] = []
    for export_cache in export_caches:
        if not export_cache:
            continue
        if "type=" not in export_cache:
            logger.warning(
                "--export-cache <ref> --export-cache-opt <opt>=<optval> is deprecated. "
                "Please use --export-cache type=registry,ref=<ref>,<opt>=<optval>"
                "[,<opt>=<optval>] instead"
            )
            attrs = _attr_map(legacy_opts)
            attrs.setdefault("mode", "min")
            attrs["ref"] = export_cache
            exports.append(CacheOptionsEntry("registry", attrs))
        else:
            if legacy_opts:
                raise ValueError(
                    "--export-cache-opt is not supported for the specified --export-cache. "
                    "Please use --export-cache type=<type>,<opt>=<optval>[,<opt>=<optval>] instead"
                )
            entry_type, attrs = _parse_csv_entry(export_cache, "--export-cache")
            attrs.setdefault("mode", "min")
            exports.append(CacheOptionsEntry(entry_type, attrs))
    return exports


def _wrap_writer(stream: IO) -> OutputFactory:
    return lambda _attrs: stream


def _resolve_exporter_dest(exporter: str, dest: str) -> tuple[Optional[OutputFactory], str]:
    """Return either a writer factory (single file) or a directory path, or neither."""
    if exporter == EXPORTER_LOCAL:
        if not dest:
            raise ValueError("output directory is required for local exporter")
        return None, dest
    if exporter in (EXPORTER_OCI, EXPORTER_DOCKER, EXPORTER_TAR):
        if dest and dest != "-":
            if os.path.isdir(dest):
                raise ValueError("destination file is a directory")
            try:
                stream = open(dest, "wb")
            except OSError as exc:
                raise ValueError(f"invalid destination file: {dest}: {exc}") from exc
            return _wrap_writer(stream), ""
        stdout = sys.stdout
        isatty = getattr(stdout, "isatty", None)
        if isatty is not None and isatty():
            raise ValueError(
                f"output file is required for {exporter} exporter. refusing to write to console"
            )
        return _wrap_writer(getattr(stdout, "buffer", stdout)), ""
    if dest:
        raise ValueError(f"output {dest} is not supported by {exporter} exporter")
    return None, ""


def _parse_output_csv(s: str) -> ExportEntry:
    entry_type, attrs = _parse_csv_entry(s, "--output")
    if "output" in attrs:
        value = attrs["output"]
        raise ValueError(
            f"output={value} not supported for --output, you meant dest={value}?"
        )
    try:
        output, output_dir = _resolve_exporter_dest(entry_type, attrs.get("dest", ""))
    except ValueError as exc:
        raise ValueError(f"invalid output option: output: {exc}") from exc
    if output is not None or output_dir:
        attrs.pop("dest", None)
    return ExportEntry(entry_type, attrs, output, output_dir)


def parse_output(exports: str) -> list[ExportEntry]:
    """Parse an --output value into at most one exporter entry."""
    if not exports:
        return []
    return [_parse_output_csv(exports)]


def parse_from_str(from_str: str) -> tuple[str, str]:
    """Split a ``file:func`` reference, filling in the default file and function."""
    filename = DEFAULT_FILE
    funcname = DEFAULT_FUNC
    if ":" not in from_str:
        if from_str:
            filename = from_str
        return filename, funcname
    parts = from_str.split(":")
    if len(parts) != 2:
        raise ValueError("invalid from format, expected `file:func`")
    if parts[0]:
        filename = parts[0]
    if parts[1]:
        funcname = parts[1]
    return filename, funcname


def default_path_env(os_name: str) -> str:
    """Return the default PATH for the given operating system."""
    if os_name == "windows":
        return DEFAULT_PATH_ENV_WINDOWS
    return DEFAULT_PATH_ENV_UNIX


def _host_os() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    return sys.platform.rstrip("0123456789") or "linux"


_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8l": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
    "arm": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


def _host_arch() -> str:
    machine = platform.machine().lower()
    return _ARCH_ALIASES.get(machine, machine)


_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _dump_json(obj: object) -> str:
    text = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    for char, escaped in _JSON_ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def image_config_str(
    labels: Optional[Mapping[str, str]],
    ports: Optional[Iterable[str]],
    entrypoint: Optional[Sequence[str]],
    env: Optional[Sequence[str]],
) -> str:
    """Serialise an OCI image configuration as compact JSON."""
    config: dict[str, object] = {}
    if ports:
        config["ExposedPorts"] = {port: {} for port in sorted(ports)}
    config["Env"] = [*(env or []), "PATH=" + default_path_env(_host_os())]
    if entrypoint:
        config["Entrypoint"] = list(entrypoint)
    config["WorkingDir"] = "/"
    if labels:
        config["Labels"] = {key: labels[key] for key in sorted(labels)}
    image = {
        "architecture": _host_arch(),
        "os": "linux",
        "config": config,
        "rootfs": {"type": "layers", "diff_ids": None},
    }
    return _dump_json(image)