"""noteport: note interchange, attachment storage and storage reconciliation."""

__version__ = "0.1.0"
