"""ZZP bookkeeping service - dubbel boekhouden voor zelfstandigen."""

__version__ = "0.1.0"
