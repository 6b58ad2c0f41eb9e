# src/llm/__init__.py — v1
"""Text-generation client layer."""
