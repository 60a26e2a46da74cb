from .inmemory import InMemoryProductCatalog, InMemoryUserDirectory, demo_directory

__all__ = ["InMemoryProductCatalog", "InMemoryUserDirectory", "demo_directory"]
