"""Catalog governance service: change and access request workflows."""
