"""Nexus hybrid assistant: a model client that can fetch external data on the model's behalf."""

__version__ = "0.1.0"
