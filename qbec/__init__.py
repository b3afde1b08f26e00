"""Application model, schema validation, object filtering and apply ordering for qbec apps."""

__version__ = "0.15.2"