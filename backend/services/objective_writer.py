"""
Objective Writer - drafts the "Objetivo Profissional" paragraph with the LLM.
Stateless: nothing is stored, the caller decides whether to use the text.
"""
import logging

from models import ObjectiveDraftRequest
from utils.llm_chat import chat

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "Você é um gerador de objetivos profissionais para currículos."

NOT_INFORMED = "Não informado"

USER_PROMPT_TEMPLATE = """
Você é um assistente especializado em criar descrições de "Objetivo Profissional" curtas, claras e profissionais para currículos.

Gere um objetivo profissional em português, no máximo 3 linhas, com tom profissional, usando as informações abaixo (use apenas o que fizer sentido):

- Cargo desejado: {role}
- Senioridade: {seniority}
- Área de atuação: {area}
- Experiência resumida: {experience}
- Pontos fortes / habilidades: {strengths}
- Resumo da vaga ou contexto: {job_summary}

Regras:
- Escreva em primeira pessoa ("Busco...", "Atuar como...").
- Não use frases genéricas demais.
- Não repita muitas vezes o mesmo termo.
- Responda apenas com o texto do objetivo, sem explicações adicionais.
"""


def build_prompt(request: ObjectiveDraftRequest) -> str:
    fields = {
        name: (value or "").strip() or NOT_INFORMED
        for name, value in request.model_dump().items()
    }
    return USER_PROMPT_TEMPLATE.format(**fields)


async def draft_objective(request: ObjectiveDraftRequest) -> str:
    """Return the drafted objective. Raises ValueError on empty model output."""
    text = await chat(SYSTEM_PROMPT, build_prompt(request), temperature=0.7, max_output_tokens=200)
    text = (text or "").strip()
    if not text:
        raise ValueError("LLM returned an empty objective")
    logger.info(f"Objective drafted ({len(text)} chars)")
    return text
