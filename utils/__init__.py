"""Shared models, errors and configuration."""
