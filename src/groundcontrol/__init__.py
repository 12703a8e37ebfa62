"""
Ground Control: volunteer call outreach and event administration backed by BSD.
"""

__version__ = "0.1.0"
