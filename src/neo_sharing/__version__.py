"""Version information for neo-sharing."""

__version__ = "0.1.0"
