"""Helpers: configuration, logging, audio and text utilities."""
