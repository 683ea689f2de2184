"""Manifest model, parsers and package sources."""
