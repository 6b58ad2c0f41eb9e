# src/storage/__init__.py — v1
"""Decentralized storage upload stage."""
