"""tenvctl — converge tenv and cosign installs and per-user shell setup."""

__version__ = "0.1.0"
