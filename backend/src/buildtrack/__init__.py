"""BuildTrack backend - construction project workflow API."""

__version__ = "0.1.0"
