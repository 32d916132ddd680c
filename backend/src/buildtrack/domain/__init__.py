"""Domain layer: errors, storage port and the workflow protocol."""
