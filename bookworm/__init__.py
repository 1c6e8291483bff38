"""Bookworm identity and session service."""
