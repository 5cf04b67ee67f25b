from .normalize import normalize_observations

__all__ = ["normalize_observations"]
