"""Common utilities shared across castellan modules."""
