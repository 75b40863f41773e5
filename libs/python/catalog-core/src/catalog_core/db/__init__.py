"""Metadata store: async engine, session factory and ORM tables."""
