"""
NumPy-backed implementations of the domain contracts.
"""
