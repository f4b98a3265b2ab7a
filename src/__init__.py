"""
Business Analytics & Scoring Engine
"""
__version__ = "1.0.0"
