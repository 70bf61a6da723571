"""edge-cd — single-node declarative-state reconciliation agent."""

__version__ = "0.1.0"
