# src/proxy/__init__.py — v1
