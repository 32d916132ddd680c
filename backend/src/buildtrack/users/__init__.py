"""User administration and per-user views."""
