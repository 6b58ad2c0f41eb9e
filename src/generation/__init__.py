# src/generation/__init__.py — v1
"""Synthetic data generation stage."""
