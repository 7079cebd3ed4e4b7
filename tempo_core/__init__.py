"""Health-metrics scoring and autonomic-balance engine.

This package turns normalized daily biometric samples into bounded composite
scores and a 5-minute autonomic balance curve. It performs no I/O of its own.
"""
