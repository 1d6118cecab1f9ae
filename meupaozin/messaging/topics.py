"""Topic names and eventType discriminators. Other systems rely on these strings."""


class Topics:
    """Fixed topic vocabulary: <entity-plural-kebab-case>.<action> plus cross-cutting topics."""

    PEDIDO_CREATED = "pedidos.created"
    PEDIDO_UPDATED = "pedidos.updated"
    PEDIDO_STATUS_CHANGED = "pedidos.status-changed"
    PEDIDO_CANCELLED = "pedidos.cancelled"

    CLIENTE_CREATED = "clientes.created"
    CLIENTE_UPDATED = "clientes.updated"
    CLIENTE_DELETED = "clientes.deleted"

    TIPO_PAO_CREATED = "tipos-pao.created"
    TIPO_PAO_UPDATED = "tipos-pao.updated"
    TIPO_PAO_DELETED = "tipos-pao.deleted"

    ANALYTICS = "analytics.events"
    NOTIFICATIONS = "notifications.events"
    AUDIT = "audit.events"

    @classmethod
    def all(cls) -> frozenset[str]:
        return frozenset(
            value
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        )


class EventTypes:
    """eventType values: <ENTITY>_<ACTION>."""

    PEDIDO_CREATED = "PEDIDO_CREATED"
    PEDIDO_UPDATED = "PEDIDO_UPDATED"
    PEDIDO_STATUS_CHANGED = "PEDIDO_STATUS_CHANGED"
    PEDIDO_CANCELLED = "PEDIDO_CANCELLED"
    PEDIDO_DELETED = "PEDIDO_DELETED"

    CLIENTE_CREATED = "CLIENTE_CREATED"
    CLIENTE_UPDATED = "CLIENTE_UPDATED"
    CLIENTE_DELETED = "CLIENTE_DELETED"

    TIPO_PAO_CREATED = "TIPO_PAO_CREATED"
    TIPO_PAO_UPDATED = "TIPO_PAO_UPDATED"
    TIPO_PAO_DELETED = "TIPO_PAO_DELETED"

    CLIENTE_CREATED_ANALYTICS = "CLIENTE_CREATED_ANALYTICS"
    CLIENTE_UPDATED_ANALYTICS = "CLIENTE_UPDATED_ANALYTICS"
    CLIENTE_DELETED_ANALYTICS = "CLIENTE_DELETED_ANALYTICS"


# Payload contracts (documentation; timestamp is added by the producer)
PEDIDO_PAYLOAD = {
    "eventType": "str",
    "pedidoId": "int",
    "clienteId": "int",
    "tipoPaoId": "int",
    "quantidade": "int",
    "precoTotal": "float",
    "status": "str",
    "observacoes": "str | None",
}
PEDIDO_STATUS_CHANGED_PAYLOAD = {
    "eventType": "str",
    "pedidoId": "int",
    "clienteId": "int",
    "previousStatus": "str",
    "newStatus": "str",
}
CLIENTE_PAYLOAD = {
    "eventType": "str",
    "clienteId": "int",
    "nome": "str",
    "email": "str",
    "telefone": "str | None",
    "endereco": "str | None",
}
TIPO_PAO_PAYLOAD = {
    "eventType": "str",
    "tipoPaoId": "int",
    "nome": "str",
    "descricao": "str | None",
    "precoBase": "float",
    "ativo": "bool",
}
