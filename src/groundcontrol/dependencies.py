"""
FastAPI dependencies for the shared API clients.

The clients are created once in the application lifespan and kept on
`app.state`.
"""

from fastapi import Request

from groundcontrol.bsd import BSDClient
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.shared.clock import Clock, utcnow


def get_bsd_client(request: Request) -> BSDClient:
    return request.app.state.bsd


def get_mailer(request: Request) -> MailgunClient:
    return request.app.state.mailer


def get_clock(request: Request) -> Clock:
    return getattr(request.app.state, "clock", utcnow)
