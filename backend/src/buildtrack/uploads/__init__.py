"""Presigned upload initiation and download URLs."""
