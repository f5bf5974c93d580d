"""PSARC Toolkit - read PlayStation archive (PSARC) files."""

__version__ = "0.1.0"
