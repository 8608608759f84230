"""Compiled kernels, parallel sampling and progress reporting."""
