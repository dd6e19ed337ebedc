"""A small Unix-like teaching system: process, memory, lock and trap models, a shell parser and user-space helpers."""

__version__ = "0.1.0"