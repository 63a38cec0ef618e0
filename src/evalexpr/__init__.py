"""Tensor expression evaluator with batch, interactive and JSON front ends."""

__version__ = "0.1.0"
