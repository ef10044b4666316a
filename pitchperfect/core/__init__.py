"""Core state machines, stores and pure helpers."""
