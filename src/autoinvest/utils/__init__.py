"""Shared utilities: configuration, logging, exceptions and polling."""
