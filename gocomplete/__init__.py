"""Go autocompletion daemon."""

__version__ = "0.1.0"
