"""Tests for container wiring."""

import asyncio

from docchat.adapters.openai_chat_client import OpenAIChatClient
from docchat.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.chat_orchestrator.session_store is container.session_store
    assert container.analysis_service.chat_client is (
        container.chat_orchestrator.chat_client
    )
    assert isinstance(container.chat_orchestrator.chat_client, OpenAIChatClient)
    assert container.chat_orchestrator.system_prompt == settings.system_prompt
    assert container.document_extractor.model == settings.openai_ocr_model
    asyncio.run(container.close_resources())
