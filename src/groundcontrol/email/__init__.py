"""
Outbound email through Mailgun.
"""
