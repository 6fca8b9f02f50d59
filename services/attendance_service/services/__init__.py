"""Attendance service business logic."""
