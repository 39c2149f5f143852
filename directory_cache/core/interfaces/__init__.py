from .cache import MISS, CacheTierBackend, Miss

__all__ = ["MISS", "CacheTierBackend", "Miss"]
