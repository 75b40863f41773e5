"""Caller identity: delegated credential composition and per-request principal."""

from catalog_core.auth.identity import compose, compose_principal
from catalog_core.auth.models import Principal

__all__ = ["Principal", "compose", "compose_principal"]
