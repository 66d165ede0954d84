"""PlaceScout: soft-preference place discovery (radius expansion, filter relaxation, result pools)."""

__version__ = "0.1.0"
