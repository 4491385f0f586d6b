"""
Ownership registry module.

Stores token bindings and persisted ledger state.
"""

from minter.registry.interface import OwnershipRegistry, TokenBinding
from minter.registry.memory import InMemoryOwnershipRegistry
from minter.registry.database import (
    Database,
    DatabaseOwnershipRegistry,
    LedgerState,
    init_database,
)

__all__ = [
    "OwnershipRegistry",
    "TokenBinding",
    "InMemoryOwnershipRegistry",
    "Database",
    "DatabaseOwnershipRegistry",
    "LedgerState",
    "init_database",
]
