# envforge

`envforge` collects the pieces a container-based development environment tool
needs around its build step:

- **Build options** (`envforge.buildopts`): parse `--import-cache`,
  `--export-cache` and `--output` style option strings into
  `CacheOptionsEntry` and `ExportEntry` values, split a `file:func` build
  reference with `parse_from_str`, pick a default `PATH` with
  `default_path_env`, and render an OCI image configuration as compact JSON
  with `image_config_str`.
- **Build cache usage** (`envforge.usage`): print `UsageInfo` records as a
  tab-separated table (`print_table_header`, `print_table_row`) or as aligned
  `key: value` blocks (`print_verbose`), with sizes from `format_bytes`
  (decimal units, two decimals, e.g. `1.50MB`).
- **Home state** (`envforge.home`, `envforge.models`): `HomeManager` keeps the
  config file, the list of build/run contexts (`Context`, `EnvdContext`,
  `BuilderType`, `RunnerType`), the cache-status map, stored credentials
  (`AuthConfig`, `EnvdAuth`) and per-name data directories on disk. State is
  stored as JSON files under a config directory and a cache directory.
- **Editor plugins** (`envforge.plugin`, `envforge.marketplace`): parse
  `publisher.extension-version` identifiers into `Plugin` values with
  `parse_plugin`, look up the latest download URL on the Open VSX marketplace
  with `get_latest_version_url`, and download and unpack plugins into the
  cache with `MarketplaceClient`.

The package has no third-party runtime dependencies and needs Python 3.10 or
later.

## Examples

### Cache and output options

```python
from envforge.buildopts import parse_export_cache, parse_import_cache, parse_from_str

imports = parse_import_cache(["type=registry,ref=example.com/foo/bar"])
exports = parse_export_cache(["type=registry,ref=example.com/foo/bar"], [])
# Export entries default to mode=min unless a mode is given.

parse_from_str("hello.envd:run")   # ("hello.envd", "run")
parse_from_str("")                 # ("build.envd", "build")
```

A value without `type=` is taken as a registry reference (deprecated form) and
a warning is logged. Malformed options raise `ValueError` with a message that
names the offending option.

`parse_output("type=tar,dest=out.tar")` returns one `ExportEntry`; for the
`tar`, `oci` and `docker` exporters a file destination is opened for writing,
and with no destination standard output is used unless it is a terminal.

### Cache usage tables

```python
import sys
from envforge.usage import UsageInfo, print_table_header, print_table_row

print_table_header(sys.stdout)
print_table_row(sys.stdout, UsageInfo(id="abc", size=1_500_000, shared=True))
```

### Home state

```python
from envforge.home import HomeManager
from envforge.models import BuilderType, Context, RunnerType

manager = HomeManager("/tmp/envforge/config", "/tmp/envforge/cache")
manager.init()

manager.context_create(
    Context(
        name="remote",
        builder=BuilderType.TCP,
        builder_address="0.0.0.0:12345",
        runner=RunnerType.ENVD_SERVER,
        runner_address="http://localhost",
    ),
    use=True,
)
current = manager.context_get_current()

manager.mark_cache("some-key", True)
manager.cached("some-key")  # True, and still True after a fresh init()
```

Creating a context whose name exists, or removing the current context, raises
`ValueError`; using or removing an unknown one raises `LookupError`. A
process-wide manager is available through `initialize(config_dir, cache_dir)`
followed by `get_manager()`.

### Editor plugins

```python
from envforge.plugin import parse_plugin

plugin = parse_plugin("ms-vscode.cpptools-1.7.1")
plugin.publisher, plugin.extension, plugin.version
# ("ms-vscode", "cpptools", "1.7.1")
```

`MarketplaceClient(vendor, manager).download_or_cache(plugin)` fetches the
plugin package from the chosen `MarketplaceVendor`, unpacks it under the
manager's cache directory and records it, returning `True` when it was
already cached. The `VSCODE` vendor requires a plugin with a version.

## What this package does not do

It does not talk to a container engine or an image builder: it does not build,
load, run or inspect images and containers, normalise image names or read
container statistics. It provides no command-line tool; it is a library to be
called from Python.

## Running the tests

Install the `test` extra and run `pytest` from the project root.