"""
GraphQL HTTP endpoint.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from graphql import GraphQLError
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from groundcontrol.auth.dependencies import OptionalUserDep
from groundcontrol.bsd import BSDClient
from groundcontrol.config import Settings, get_settings
from groundcontrol.dependencies import get_bsd_client, get_clock, get_mailer
from groundcontrol.email.mailgun import MailgunClient
from groundcontrol.graphql.context import GraphQLContext
from groundcontrol.graphql.schema import schema
from groundcontrol.shared.clock import Clock
from groundcontrol.shared.database import get_db_session
from groundcontrol.shared.exceptions import AppException
from groundcontrol.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["graphql"])

INTERNAL_ERROR = AppException("Internal server error")


class GraphQLRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    variables: dict[str, Any] | None = None
    operation_name: str | None = Field(default=None, alias="operationName")


def format_error(error: GraphQLError) -> dict[str, Any]:
    """Serialize an error; application errors carry their status in the message."""
    formatted = error.formatted
    original = error.original_error
    if isinstance(original, AppException):
        formatted["message"] = original.to_json()
    elif original is not None:
        logger.error(
            "Unhandled error in GraphQL resolver",
            exc_info=(type(original), original, original.__traceback__),
            extra={"path": formatted.get("path")},
        )
        formatted["message"] = INTERNAL_ERROR.to_json()
    return formatted


@router.post("/graphql")
async def graphql_endpoint(
    body: GraphQLRequest,
    session: Annotated[AsyncSession, Depends(get_db_session)],
    user: OptionalUserDep,
    bsd: Annotated[BSDClient, Depends(get_bsd_client)],
    mailer: Annotated[MailgunClient, Depends(get_mailer)],
    clock: Annotated[Clock, Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> JSONResponse:
    context = GraphQLContext(
        session=session,
        bsd=bsd,
        mailer=mailer,
        settings=settings,
        user=user,
        clock=clock,
    )
    result = await schema.execute_async(
        body.query,
        variable_values=body.variables,
        operation_name=body.operation_name,
        context_value=context,
    )

    payload: dict[str, Any] = {"data": result.data}
    if result.errors:
        # Partial work from a failed mutation must not be committed.
        await session.rollback()
        payload["errors"] = [format_error(error) for error in result.errors]
        logger.info(
            "GraphQL request finished with errors",
            extra={"operation": body.operation_name, "errors": len(result.errors)},
        )

    status_code = 400 if result.data is None and result.errors else 200
    return JSONResponse(status_code=status_code, content=payload)
