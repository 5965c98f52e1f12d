"""Chat-based personal assistant: events, expenses and conversation export."""

__version__ = "0.1.0"
