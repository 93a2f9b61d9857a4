"""Dependency-ordered execution of ServiceNow procurement requests."""

__version__ = "1.0.0"
