"""Credentials (tokens.py) and the permission guard (permissions.py)."""
