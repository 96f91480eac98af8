# appinstalld

Building blocks for a daemon that installs and removes application
packages (`.ipk` archives) on a device.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## What is inside

- `appinstalld.utils`: file helpers (`read_file`, `make_dir`, `remove_dir`,
  `remove_file`, `file_size`, `dir_size`, `file_exists`), helpers for
  `pwa://` paths (`is_pwa`, `get_pwa_path`) and `kill_process`, which sends
  SIGTERM to a process and, by default, to all its descendants (found through
  `/proc`) and returns the pids it signalled.
- `appinstalld.mainloop`: `MainLoop` runs callbacks scheduled with
  `call_soon` / `call_later` in deadline order; `run_pending` runs what is due
  now, `run` dispatches until `quit` (which may be called from another
  thread). `get_default_loop()` returns the process-wide loop and
  `run_async(func, delay)` schedules on it. `App` is an abstract base with
  `create`, `run`, `quit` and `destroy`, calling `on_create` / `on_destroy`.
- `appinstalld.callchain`: `CallChain` runs `CallItem`s one after another,
  passing a dict of chain data between them and handing the final data, with
  `returnValue` and on failure `errorText`, to its handler. Items can be
  added conditionally with `add_if`; an item whose `option` includes
  `CallOption.NONSTOP` lets the chain go on even when it fails.
  `FunctionCallItem` wraps a Python callable; `Signal` is the small slot list
  items report through.
- `appinstalld.jutil`: `SchemaLoader` parses JSON text or files and checks
  them against `<name>.schema` files in a schema directory (via
  `jsonschema`); failures raise `JsonError` carrying a `JsonErrorCode`.
  `to_simple_string` serialises compactly.
- `appinstalld.locales`: `Locales.from_file` reads `localeInfo.locales.UI`
  from a locale file; `parse_locale` splits a name such as `zh-Hans-CN` or
  `en_US` into language, script and region.
- `appinstalld.appinfo`: `AppInfo` reads an application's `appinfo.json`
  (type, id, version, title, icon, main, install config, required
  permissions); `load_localization` adds localized titles and icons from the
  `resources/` tree.
- `appinstalld.apppackage`: `AppPackage.extract` pulls the chosen
  `ExtractItem` members out of an `.ipk` (ar) archive in pure Python and
  unpacks the control and data tarballs, raising `PackageError` on failure or
  cancellation. `parse_control` reads a control file into a `Control`;
  `save_installed_size` appends an `Installed-Size` line.
- `appinstalld.installer_utility`: `AppInstallerUtility` starts the external
  `ApplicationInstallerUtility` tool (paths from an `InstallerConfig`) for
  install and remove, streams its `status:` / ` * ` progress lines to a
  callback, reports the exit status on completion, and allows one command at
  a time in the process (`InstallResult.LOCKED` otherwise). `opkg_lock_dir`
  gives the directory the lock file lives in.

## Example

```python
from appinstalld.callchain import CallChain, FunctionCallItem
from appinstalld.mainloop import get_default_loop

results = []
chain = CallChain(lambda data: results.append(data))
chain.add(FunctionCallItem(lambda: True))
chain.run({"id": "com.example.app"})
get_default_loop().run_pending()
print(results)  # [{'id': 'com.example.app', 'returnValue': True}]
```

## What this package does not do

It provides no daemon command, no message-bus service, and no task manager
that queues installs or keeps their state between runs. It has no shared
singleton or factory registry; objects such as `SchemaLoader` and
`AppInstallerUtility` are created and passed around by the caller.