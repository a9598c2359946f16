"""Document change monitoring with keyword-change notifications."""

__version__ = "0.1.0"
