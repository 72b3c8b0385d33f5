"""
Package Linker - Link monorepo sub-package builds into a shared node_modules.

This package replaces copies of local packages inside the shared dependency
directory with symbolic links to each package's build output, so changes to
a package are picked up by its dependents without republishing.
"""

__version__ = "1.0.0"
