"""Project chat messages."""
