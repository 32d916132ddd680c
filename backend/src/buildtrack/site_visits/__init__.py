"""Site visit scheduling, progress capture and approval."""
