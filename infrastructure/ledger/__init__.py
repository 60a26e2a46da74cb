from .inmemory import InMemoryOrderLedger

__all__ = ["InMemoryOrderLedger"]
