"""Default topic handlers: customer notifications, dashboard, catalog, analytics and audit.

Side effects are log lines for now; each handler is where a real
integration (e-mail, push, BI) plugs in.
"""

import logging
from typing import Any

from meupaozin.messaging.models import ConsumedMessage
from meupaozin.messaging.registry import TopicHandlerRegistry
from meupaozin.messaging.topics import Topics

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    "ACEITO": "Seu pedido foi aceito e está sendo preparado!",
    "EM_PREPARO": "Seu pedido está sendo preparado!",
    "SAIU_PARA_ENTREGA": "Seu pedido saiu para entrega!",
    "FINALIZADO": "Seu pedido foi entregue!",
    "CANCELADO": "Seu pedido foi cancelado.",
}
DEFAULT_STATUS_MESSAGE = "Status do seu pedido foi atualizado."


def status_message(new_status: str | None) -> str:
    return STATUS_MESSAGES.get(new_status or "", DEFAULT_STATUS_MESSAGE)


def price_changed(payload: dict[str, Any]) -> bool:
    previous = payload.get("previousData") or {}
    return previous.get("precoBase") != payload.get("precoBase")


def notify_cliente(cliente_id: Any, kind: str, text: str) -> None:
    logger.info("Notificação para cliente %s (%s): %s", cliente_id, kind, text)


def update_dashboard(kind: str, payload: dict[str, Any]) -> None:
    logger.info("Dashboard %s: %s", kind, payload)


def record_analytics(kind: str, payload: dict[str, Any]) -> None:
    logger.info("Analytics %s: %s", kind, payload)


async def on_pedido_created(message: ConsumedMessage) -> None:
    p = message.payload
    notify_cliente(p.get("clienteId"), "PEDIDO_CREATED", f"Seu pedido #{p.get('pedidoId')} foi criado com sucesso!")
    update_dashboard("PEDIDO_CREATED", p)
    record_analytics("PEDIDO_CREATED", p)


async def on_pedido_status_changed(message: ConsumedMessage) -> None:
    p = message.payload
    notify_cliente(p.get("clienteId"), "PEDIDO_STATUS_CHANGED", status_message(p.get("newStatus")))
    update_dashboard("PEDIDO_STATUS_CHANGED", p)
    record_analytics("PEDIDO_STATUS_CHANGED", p)


async def on_pedido_updated(message: ConsumedMessage) -> None:
    update_dashboard("PEDIDO_UPDATED", message.payload)
    record_analytics("PEDIDO_UPDATED", message.payload)


async def on_pedido_cancelled(message: ConsumedMessage) -> None:
    p = message.payload
    notify_cliente(p.get("clienteId"), "PEDIDO_CANCELLED", "Seu pedido foi cancelado.")
    logger.info("Processando reembolso para pedido %s", p.get("pedidoId"))
    update_dashboard("PEDIDO_CANCELLED", p)
    record_analytics("PEDIDO_CANCELLED", p)


async def on_cliente_created(message: ConsumedMessage) -> None:
    p = message.payload
    logger.info("Email de boas-vindas enviado para %s", p.get("email"))
    logger.info("Cliente registrado no sistema de marketing: %s", p.get("email"))
    record_analytics("CLIENTE_CREATED", p)


async def on_cliente_updated(message: ConsumedMessage) -> None:
    logger.info("Cliente %s atualizado em sistemas externos", message.payload.get("clienteId"))
    record_analytics("CLIENTE_UPDATED", message.payload)


async def on_cliente_deleted(message: ConsumedMessage) -> None:
    logger.info("Processando exclusão do cliente %s em sistemas externos", message.payload.get("clienteId"))
    record_analytics("CLIENTE_DELETED", message.payload)


def _tipo_pao_nome(payload: dict[str, Any]) -> Any:
    return payload.get("nome") or (payload.get("previousData") or {}).get("nome")


async def on_tipo_pao_created(message: ConsumedMessage) -> None:
    logger.info("Catálogo atualizado: %s", _tipo_pao_nome(message.payload))
    record_analytics("TIPO_PAO_CREATED", message.payload)


async def on_tipo_pao_updated(message: ConsumedMessage) -> None:
    p = message.payload
    if price_changed(p):
        logger.info(
            "Mudança de preço de %s: %s -> %s",
            p.get("nome"),
            (p.get("previousData") or {}).get("precoBase"),
            p.get("precoBase"),
        )
    logger.info("Catálogo atualizado: %s", _tipo_pao_nome(p))
    record_analytics("TIPO_PAO_UPDATED", p)


async def on_tipo_pao_deleted(message: ConsumedMessage) -> None:
    logger.info("Catálogo atualizado: %s removido", _tipo_pao_nome(message.payload))
    record_analytics("TIPO_PAO_DELETED", message.payload)


async def on_analytics(message: ConsumedMessage) -> None:
    logger.info("Processando dados de analytics: %s", message.payload)


async def on_notification(message: ConsumedMessage) -> None:
    logger.info("Enviando notificação multicanal: %s", message.payload)


async def on_audit(message: ConsumedMessage) -> None:
    logger.info("Auditoria %s: %s", message.event_type, message.payload)


DEFAULT_HANDLERS = {
    Topics.PEDIDO_CREATED: on_pedido_created,
    Topics.PEDIDO_STATUS_CHANGED: on_pedido_status_changed,
    Topics.PEDIDO_UPDATED: on_pedido_updated,
    Topics.PEDIDO_CANCELLED: on_pedido_cancelled,
    Topics.CLIENTE_CREATED: on_cliente_created,
    Topics.CLIENTE_UPDATED: on_cliente_updated,
    Topics.CLIENTE_DELETED: on_cliente_deleted,
    Topics.TIPO_PAO_CREATED: on_tipo_pao_created,
    Topics.TIPO_PAO_UPDATED: on_tipo_pao_updated,
    Topics.TIPO_PAO_DELETED: on_tipo_pao_deleted,
    Topics.ANALYTICS: on_analytics,
    Topics.NOTIFICATIONS: on_notification,
    Topics.AUDIT: on_audit,
}


def register_default_handlers(registry: TopicHandlerRegistry) -> None:
    """Register one handler per topic of the fixed vocabulary."""
    for topic, handler in DEFAULT_HANDLERS.items():
        registry.register(topic, handler)
