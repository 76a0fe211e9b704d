"""
FarmTrace Backend — Produce Routes
====================================

What:  Binds the four produce GET endpoints to an invoker.
How:   Each handler forwards the request and the response sink to the
       matching invoker operation and returns whatever it produces.
       Nothing is validated or caught here.

Route Table:
    GET /get_produce/{id}          → invoker.get_produce
    GET /add_produce/{produce}     → invoker.add_produce
    GET /get_all_produce           → invoker.get_all_produce
    GET /change_holder/{holder}    → invoker.change_holder
"""

from typing import Any, Union

from fastapi import APIRouter, FastAPI, Request, Response

from farmtrace.schemas.produce import ErrorResponse
from farmtrace.services.invoker import Invoker

_ERRORS = {
    400: {"description": "Malformed path parameter", "model": ErrorResponse},
    404: {"description": "Produce not found", "model": ErrorResponse},
    500: {"description": "Ledger error", "model": ErrorResponse},
}


def register_routes(router: Union[FastAPI, APIRouter], invoker: Invoker) -> None:
    """Attach the produce routes to `router`, delegating to `invoker`."""

    @router.get("/get_produce/{id}", responses=_ERRORS, summary="Get one produce record")
    async def get_produce(request: Request, response: Response) -> Any:
        return await invoker.get_produce(request, response)

    @router.get("/add_produce/{produce}", responses=_ERRORS, summary="Record a produce batch")
    async def add_produce(request: Request, response: Response) -> Any:
        return await invoker.add_produce(request, response)

    @router.get("/get_all_produce", responses=_ERRORS, summary="List all produce records")
    async def get_all_produce(request: Request, response: Response) -> Any:
        return await invoker.get_all_produce(request, response)

    @router.get("/change_holder/{holder}", responses=_ERRORS, summary="Change a produce holder")
    async def change_holder(request: Request, response: Response) -> Any:
        return await invoker.change_holder(request, response)


def build_router(invoker: Invoker) -> APIRouter:
    router = APIRouter(tags=["Produce"])
    register_routes(router, invoker)
    return router
