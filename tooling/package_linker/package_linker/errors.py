"""Exceptions raised by package_linker."""


class LinkerError(Exception):
    """Base class for package_linker errors."""


class ConfigError(LinkerError):
    """The linker configuration is invalid."""


class DiscoveryError(LinkerError):
    """The package root or one of its manifests could not be read."""


class LinkError(LinkerError):
    """A link could not be created."""

    def __init__(self, link: str, target: str, reason: str):
        super().__init__(f"Cannot link {link} -> {target}: {reason}")
        self.link = link
