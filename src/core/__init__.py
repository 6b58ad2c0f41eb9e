# src/core/__init__.py — v1
"""Core domain models and error taxonomy."""
