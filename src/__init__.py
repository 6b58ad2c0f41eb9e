# src/__init__.py — v1
"""Filethetic: synthetic dataset generation, storage upload and on-chain publishing."""
