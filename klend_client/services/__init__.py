"""Service modules"""
from .lending import LendingService
from .transactions import TransactionOrchestrator

__all__ = ["LendingService", "TransactionOrchestrator"]
