"""
GraphQL schema served to the admin UI.
"""
