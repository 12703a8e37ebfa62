"""
BSD constituents: people, addresses, phones and emails.
"""
