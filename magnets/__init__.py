"""Show catalogue tooling: show and season models, configuration, logging, database dump and load, prefix search, schedule diffing and state notifications."""

__version__ = "0.1.0"