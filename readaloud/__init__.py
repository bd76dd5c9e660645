"""ReadAloud - adaptive voice recorder for children's read-aloud practice."""

__version__ = "0.1.0"
