"""Walk an order through its lifecycle against a running API to produce every pedidos.* event.

Creates a cliente and a pedido, moves the pedido through each status,
changes a bread price and cancels a second pedido. Watch the API log (or a
Kafka consumer) for the corresponding events.

Usage:
    python scripts/exercise_events.py [base_url]
"""

import asyncio
import sys
import time

import httpx

DEFAULT_BASE_URL = "http://localhost:3000"
STEP_DELAY = 1.0

LIFECYCLE = ["ACEITO", "EM_PREPARO", "SAIU_PARA_ENTREGA", "FINALIZADO"]


async def run(base_url: str) -> None:
    suffix = int(time.time())
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        r = await client.post(
            "/clientes",
            json={
                "nome": "João Teste Kafka",
                "email": f"joao.kafka.{suffix}@teste.com",
                "telefone": "(11) 99999-9999",
                "endereco": "Rua do Teste, 123",
            },
        )
        r.raise_for_status()
        cliente = r.json()

        r = await client.post(
            "/tipos-pao", json={"nome": f"Pão Teste {suffix}", "precoBase": "3,50"}
        )
        r.raise_for_status()
        tipo_pao = r.json()

        r = await client.post(
            "/pedidos",
            json={"cliente_id": cliente["id"], "tipo_pao_id": tipo_pao["id"], "quantidade": 3},
        )
        r.raise_for_status()
        pedido = r.json()
        print(f"pedido {pedido['id']} criado: {pedido['status']}")

        for status in LIFECYCLE:
            await asyncio.sleep(STEP_DELAY)
            r = await client.patch(f"/pedidos/{pedido['id']}", json={"status": status})
            r.raise_for_status()
            print(f"pedido {pedido['id']} -> {status}")

        r = await client.patch(f"/tipos-pao/{tipo_pao['id']}", json={"precoBase": 4.5})
        r.raise_for_status()
        print(f"tipo de pão {tipo_pao['id']} preço -> 4.50")

        r = await client.post(
            "/pedidos",
            json={"cliente_id": cliente["id"], "tipo_pao_id": tipo_pao["id"], "quantidade": 1},
        )
        r.raise_for_status()
        cancelado = r.json()
        r = await client.patch(f"/pedidos/{cancelado['id']}", json={"status": "CANCELADO"})
        r.raise_for_status()
        print(f"pedido {cancelado['id']} cancelado")


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL
    try:
        asyncio.run(run(base_url))
    except httpx.HTTPError as e:
        print(f"Run failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
