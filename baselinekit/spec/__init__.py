"""Approved execution specifications and their registry."""
