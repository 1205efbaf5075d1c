"""
Task reminder service package.
"""
