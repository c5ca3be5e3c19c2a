"""World spatial index and hunt correlation tooling."""

__version__ = "0.3.0"
