"""Clarity backend: ADHD-friendly cleaning micro-routines."""

__version__ = "0.1.0"
