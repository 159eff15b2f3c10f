"""Objective drafting: prompt assembly, empty-output handling and the /api/ia/objetivo route."""
import pytest
from unittest.mock import AsyncMock, patch

from models import ObjectiveDraftRequest


def test_prompt_fills_missing_fields_with_placeholder():
    from services.objective_writer import build_prompt

    prompt = build_prompt(ObjectiveDraftRequest(role="Desenvolvedor", area="  "))

    assert "- Cargo desejado: Desenvolvedor" in prompt
    assert "- Área de atuação: Não informado" in prompt
    assert "- Resumo da vaga ou contexto: Não informado" in prompt


@pytest.mark.asyncio
async def test_draft_objective_strips_model_output():
    from services.objective_writer import draft_objective

    with patch("services.objective_writer.chat", new_callable=AsyncMock,
               return_value="  Busco atuar como desenvolvedor backend.\n") as chat:
        text = await draft_objective(ObjectiveDraftRequest(role="Dev"))

    assert text == "Busco atuar como desenvolvedor backend."
    assert chat.await_args.kwargs["max_output_tokens"] == 200


@pytest.mark.asyncio
async def test_empty_model_output_raises():
    from services.objective_writer import draft_objective

    with patch("services.objective_writer.chat", new_callable=AsyncMock, return_value="   "):
        with pytest.raises(ValueError):
            await draft_objective(ObjectiveDraftRequest())


def test_route_returns_objective(client):
    with patch("routes.ai.draft_objective", new_callable=AsyncMock, return_value="Busco crescer."):
        response = client.post("/api/ia/objetivo", json={"cargo": "Dev", "senioridade": "Pleno"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "objetivo": "Busco crescer."}


def test_route_failure_is_structured_500(client):
    with patch("routes.ai.draft_objective", new_callable=AsyncMock,
               side_effect=ValueError("LLM_API_KEY not found in environment")):
        response = client.post("/api/ia/objetivo", json={})

    assert response.status_code == 500
    assert response.json()["detail"]["error_code"] == "OBJECTIVE_GENERATION_FAILED"
