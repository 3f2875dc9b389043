"""Castellan: actor/scope aware permission and role resolution."""

__version__ = "0.1.0"
