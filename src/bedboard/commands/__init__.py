"""Bedboard CLI commands."""
