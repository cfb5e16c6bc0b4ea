"""Bundled configuration documents."""
