"""
Coalition Hub backend.
"""
