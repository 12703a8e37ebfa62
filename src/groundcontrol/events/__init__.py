"""
Events mirrored from BSD and the admin workflows around them.
"""
