"""
Distance math and radius searches over latitude/longitude columns.
"""
