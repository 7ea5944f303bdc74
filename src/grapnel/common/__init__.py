"""Shared math, bounds and error-feed helpers."""
