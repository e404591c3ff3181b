"""
Multi-send Kernel

Pure core for evaluating batched multi-party transfers:
- Immutable value objects for coins, balances and denominations
- Typed rejection errors with machine-readable codes
- Structured JSON logging
"""

__version__ = "0.1.0"
