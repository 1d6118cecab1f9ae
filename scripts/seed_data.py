"""Seed a running MeuPaoZin API with sample tipos de pão, clientes and pedidos.

Goes through the HTTP API so every insert also publishes its event. Existing
records (409) are looked up and reused.

Usage:
    python scripts/seed_data.py [base_url]
"""

import asyncio
import sys

import httpx

DEFAULT_BASE_URL = "http://localhost:3000"

TIPOS_PAO = [
    ("Pão de Queijo", "Pão de queijo tradicional mineiro, feito com polvilho azedo", "3,50"),
    ("Focaccia", "Focaccia italiana com azeite e ervas", "4,50"),
    ("Pão Francês", "Pão francês tradicional", "2,00"),
    ("Pão Integral", "Pão integral com grãos", "3,00"),
    ("Croissant", "Croissant francês", "5,00"),
    ("Baguette", "Baguette francesa", "4,00"),
    ("Pão de Batata", "Pão de batata caseiro", "3,80"),
    ("Pão de Milho", "Pão de milho tradicional", "2,50"),
]

CLIENTES = [
    ("João Silva", "joao.silva@email.com", "(11) 99999-9999", "Rua das Flores, 123 - Centro"),
    ("Maria Santos", "maria.santos@email.com", "(11) 88888-8888", "Av. Paulista, 456 - Bela Vista"),
    ("Pedro Oliveira", "pedro.oliveira@email.com", "(11) 77777-7777", "Rua Augusta, 789 - Consolação"),
    ("Ana Costa", "ana.costa@email.com", "(11) 66666-6666", "Rua Oscar Freire, 321 - Jardins"),
    ("Carlos Ferreira", "carlos.ferreira@email.com", "(11) 55555-5555", "Rua 13 de Maio, 654 - Bixiga"),
]

# (cliente index, tipo de pão index, quantidade, observações)
PEDIDOS = [
    (0, 0, 5, "Sem sal"),
    (1, 1, 3, "Bem assada"),
    (2, 2, 10, "Para café da manhã"),
    (3, 3, 2, "Integral fresco"),
    (4, 4, 4, "Para reunião"),
]


async def _create_or_get(client: httpx.AsyncClient, url: str, body: dict, lookup: str) -> dict:
    response = await client.post(url, json=body)
    if response.status_code == 409:
        response = await client.get(lookup)
    response.raise_for_status()
    return response.json()


async def seed(base_url: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        tipos = []
        for nome, descricao, preco in TIPOS_PAO:
            tipos.append(
                await _create_or_get(
                    client,
                    "/tipos-pao",
                    {"nome": nome, "descricao": descricao, "precoBase": preco},
                    f"/tipos-pao/nome/{nome}",
                )
            )
        print(f"{len(tipos)} tipos de pão")

        clientes = []
        for nome, email, telefone, endereco in CLIENTES:
            clientes.append(
                await _create_or_get(
                    client,
                    "/clientes",
                    {"nome": nome, "email": email, "telefone": telefone, "endereco": endereco},
                    f"/clientes/email/{email}",
                )
            )
        print(f"{len(clientes)} clientes")

        for cliente_idx, tipo_idx, quantidade, observacoes in PEDIDOS:
            response = await client.post(
                "/pedidos",
                json={
                    "cliente_id": clientes[cliente_idx]["id"],
                    "tipo_pao_id": tipos[tipo_idx]["id"],
                    "quantidade": quantidade,
                    "observacoes": observacoes,
                },
            )
            response.raise_for_status()
        print(f"{len(PEDIDOS)} pedidos")


def main() -> None:
    base_url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_BASE_URL
    try:
        asyncio.run(seed(base_url))
    except httpx.HTTPError as e:
        print(f"Seed failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
