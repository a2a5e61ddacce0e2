"""Read versioned schema migrations from sources and apply them to databases."""

__version__ = "0.1.0"