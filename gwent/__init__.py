"""
Gwent - Card-script compiler and effect engine

Compiles plain-text card files (effects and cards written in the Gwent
card-script language) into card definitions, and runs their effects
against a game. Provides:
- A lexer, parser and type checker that report every error in one pass
- Card validation into immutable definitions
- An effect executor that isolates runtime faults per effect
- A command line and an HTTP API around the compiler
"""

__version__ = "0.1.0"
