"""Siteworks: construction work items, their documents and two-track review."""
