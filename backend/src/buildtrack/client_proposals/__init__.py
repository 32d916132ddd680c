"""Commercial proposals sent to customers."""
