"""Fuel command-line interface."""
