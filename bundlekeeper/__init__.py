"""bundlekeeper: install, re-install and uninstall asset bundles with a file ledger.

Core design goals:
- Read bundle contents from container headers without extracting payloads
- Crash-recoverable installs (durable session before extraction)
- Install history recorded by snapshot diffing, merged per bundle title
- Uninstall removes only what was installed, pruning emptied directories
- Centralized logging
"""

__all__ = []
