"""
Login, session tokens and access guards.
"""
