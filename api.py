"""HTTP API для формы заказа на сайте."""
import logging
from typing import Any

from fastapi import APIRouter, Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import CORS_ORIGINS
from errors import InvalidStatusError, NotFoundError, OrderError, StoreError, ValidationError
from models import CommentUpdate, Order, StatusUpdate
from services import OrderService, StatusController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/commandes")

ERROR_STATUS_CODES = {
    ValidationError: 400,
    InvalidStatusError: 400,
    NotFoundError: 404,
    StoreError: 500,
}


def _order_json(order: Order) -> dict:
    return order.model_dump(mode="json", by_alias=True)


def _services(request: Request) -> tuple[OrderService, StatusController]:
    return request.app.state.order_service, request.app.state.status_controller


@router.get("")
@router.get("/", include_in_schema=False)
async def list_orders(request: Request):
    order_service, _ = _services(request)
    orders = await order_service.list_orders()
    return [_order_json(o) for o in orders]


@router.get("/{order_id}")
async def get_order(order_id: str, request: Request):
    order_service, _ = _services(request)
    return _order_json(await order_service.get_order(order_id))


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
async def create_order(request: Request, payload: Any = Body(...)):
    order_service, _ = _services(request)
    result = await order_service.submit_order(payload)
    return {
        "success": True,
        "message": "Commande créée avec succès",
        "orderId": result.order.id,
        "notificationClient": result.customer_notified,
        "notificationFermiers": result.staff_notified,
    }


@router.patch("/{order_id}/status")
async def update_status(order_id: str, request: Request, payload: StatusUpdate):
    _, status_controller = _services(request)
    if not payload.status:
        raise ValidationError("Statut manquant")

    result = await status_controller.transition(order_id, payload.status, payload.actor_label)
    return {
        "success": True,
        "message": "Statut mis à jour",
        "notificationEnvoyee": result.customer_notified,
    }


@router.patch("/{order_id}/comment")
async def update_comment(order_id: str, request: Request, payload: CommentUpdate):
    order_service, _ = _services(request)
    await order_service.set_comment(order_id, payload.comment or "")
    return {"success": True, "message": "Commentaire ajouté"}


async def handle_order_error(request: Request, exc: OrderError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        # детали уже в логе хранилища, клиенту — общий текст
        logger.error(f"{request.method} {request.url.path}: {exc!r}")
        message = StoreError.message
    else:
        logger.info(f"{request.method} {request.url.path} → {status_code}: {exc.message}")
        message = exc.message
    return JSONResponse({"success": False, "message": message}, status_code=status_code)


async def handle_bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} → 400: {exc.errors()}")
    return JSONResponse({"success": False, "message": "Données incomplètes"}, status_code=400)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Ошибка при обработке {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse({"success": False, "message": "Erreur serveur"}, status_code=500)


def create_app(order_service: OrderService, status_controller: StatusController) -> FastAPI:
    app = FastAPI(title="Ferme O'Neil - Commandes")
    app.state.order_service = order_service
    app.state.status_controller = status_controller

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_methods=["GET", "POST", "PATCH"],
        allow_headers=["*"],
    )

    app.add_exception_handler(OrderError, handle_order_error)
    app.add_exception_handler(RequestValidationError, handle_bad_body)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app
