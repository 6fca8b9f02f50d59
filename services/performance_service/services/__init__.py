"""Performance service business logic."""
