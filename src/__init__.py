# src/__init__.py — v1
"""Anthropic Messages API proxy: request router, API client and response cache."""
