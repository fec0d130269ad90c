"""
Custodial treasury engine.

Dispatcher направляет operation ids в handler-модули, которые делят
единое SharedState. Каждая операция атомарна (Journal).
"""

from src.treasury.collaborators import (
    Collaborators,
    InMemoryPrincipalToken,
    InMemoryReserveAsset,
    InMemoryStakingVault,
    ManualClock,
    RecordingCustodian,
)
from src.treasury.dispatcher import Dispatcher
from src.treasury.factory import (
    Treasury,
    build_in_memory_collaborators,
    build_treasury,
    default_modules,
    load_treasury_config,
)
from src.treasury.journal import Journal
from src.treasury.state import SharedState

__all__ = [
    # Core
    "Dispatcher",
    "Journal",
    "SharedState",
    # Collaborators
    "Collaborators",
    "InMemoryReserveAsset",
    "InMemoryPrincipalToken",
    "InMemoryStakingVault",
    "RecordingCustodian",
    "ManualClock",
    # Assembly
    "Treasury",
    "build_treasury",
    "build_in_memory_collaborators",
    "default_modules",
    "load_treasury_config",
]
