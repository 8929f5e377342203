"""cellevo: agent-based evolution of motile, food-seeking cells."""

__version__ = "0.1.0"
