"""
Core batch translation logic.
"""
