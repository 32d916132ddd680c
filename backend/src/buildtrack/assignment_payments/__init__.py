"""Agreed pay for users assigned to project work."""
