"""advisor-flow — decision-tree consultation engine."""

__version__ = "0.1.0"
