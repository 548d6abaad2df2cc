"""Shipline - build, deploy and report a containerised web application."""

__version__ = "0.1.0"
