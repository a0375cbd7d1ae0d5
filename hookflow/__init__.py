"""hookflow - git hook orchestration and cascade engine for artifact graphs."""

__version__ = "0.1.0"
