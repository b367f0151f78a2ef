"""Diagram editing engine for wiring catalog components together."""

__version__ = "2.0.0"
