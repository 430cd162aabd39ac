"""Client-side integration layer for the Kamino lending program."""

__version__ = "0.1.0"
