"""Shared building blocks for the data catalog governance service."""
