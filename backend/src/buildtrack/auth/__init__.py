"""Authentication (JWT verification) and role-based authorization."""
