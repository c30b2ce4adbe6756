"""Adapters - Infrastructure implementations of core interfaces."""
