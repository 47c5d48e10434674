"""
Core types for tokenization.
"""

type Token = int
type SymbolPair = tuple[str, str]
