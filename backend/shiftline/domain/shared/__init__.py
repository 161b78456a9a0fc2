"""Shared domain kernel: base classes and exceptions."""
