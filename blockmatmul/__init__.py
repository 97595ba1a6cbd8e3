"""Block-distributed dense matrix multiplication over an in-process message-passing world."""

__version__ = "0.1.0"