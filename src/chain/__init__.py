# src/chain/__init__.py — v1
"""On-chain dataset registration stage."""
