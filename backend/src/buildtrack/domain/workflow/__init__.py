"""Guarded document-transition protocol.

TransactionCoordinator opens the transaction, BlobRelocator moves staged
files and tracks them on the handle's ledger, StateMachine validates and
applies status changes. See machines.py for the concrete tables.
"""

from .transaction import PendingMove, TransactionCoordinator, TransactionHandle
from .relocation import BlobRelocator, build_permanent_key, key_computer_for
from .state_machine import StateMachine

__all__ = [
    "PendingMove",
    "TransactionCoordinator",
    "TransactionHandle",
    "BlobRelocator",
    "build_permanent_key",
    "key_computer_for",
    "StateMachine",
]
