"""Monkeep command line interface."""
