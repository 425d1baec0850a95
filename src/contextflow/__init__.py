"""ContextFlow - notes, AI insights and context-aware chat."""

__version__ = "0.1.0"
