"""sofy-shorts: short-form video generation with job monitoring."""

__version__ = "0.1.0"
