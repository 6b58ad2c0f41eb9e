# src/pipeline/__init__.py — v1
"""Publish pipeline state machine."""
