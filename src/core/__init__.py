"""Core domain package for the chat hotlink rehoster.

Core contains URL classification, normalization, scanning, and rewriting
logic without any HTTP, storage, or rendering code, keeping it portable.
"""
