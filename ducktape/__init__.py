"""Turn natural language scheduling requests into validated ducktape commands."""

__version__ = "0.1.0"
