"""
Shared infrastructure: configuration-backed database access, logging and errors.
"""
