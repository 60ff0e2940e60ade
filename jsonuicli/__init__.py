"""jsonui - run JSON-defined UI tests against web apps."""

__version__ = "0.1.0"
