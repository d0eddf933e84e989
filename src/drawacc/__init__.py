"""Draw accumulator workbench: exponential-decay distribution of balances across draws."""

__version__ = "1.0.0"
