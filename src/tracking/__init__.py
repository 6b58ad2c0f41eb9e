# src/tracking/__init__.py — v1
"""Model call usage and cost tracking."""
