"""
Homebrain Text Adapters Package

Adapters for turning command text into typed tokens.
"""

from homebrain.adapters.text.tokenizer import DeterministicTokenizer

__all__ = [
    "DeterministicTokenizer",
]
