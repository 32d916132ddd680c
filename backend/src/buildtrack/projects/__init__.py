"""Projects, architect proposals and architect documents."""
