"""Single-operator railway reservation ledger."""

__version__ = "1.0.0"
