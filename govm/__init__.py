"""Go toolchain version manager: list, install, switch and remove Go releases."""

__version__ = "0.1.0"