"""Customer leads, their requirements and requirement sharing."""
