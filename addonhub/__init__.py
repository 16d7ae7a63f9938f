"""AddonHub: marketplace API for game modification packages."""

__version__ = "1.0.0"
