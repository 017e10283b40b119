"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from docchat.adapters.openai_chat_client import OpenAIChatClient
from docchat.adapters.openai_ocr_client import OpenAIOcrClient
from docchat.adapters.supabase_analysis_repository import SupabaseAnalysisRepository
from docchat.adapters.supabase_identity_verifier import SupabaseIdentityVerifier
from docchat.adapters.supabase_session_repository import SupabaseSessionRepository
from docchat.adapters.supabase_storage_client import SupabaseObjectStore
from docchat.adapters.supabase_usage_repository import SupabaseUsageRepository
from docchat.config import Settings
from docchat.services.analysis import AnalysisService
from docchat.services.auth import IdentityVerifier
from docchat.services.chat import ChatOrchestrator
from docchat.services.extraction import DocumentExtractor
from docchat.services.sessions import SessionStore
from docchat.services.storage import ObjectStore
from docchat.services.usage import UsageService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_verifier: IdentityVerifier
    object_store: ObjectStore
    session_store: SessionStore
    usage_service: UsageService
    document_extractor: DocumentExtractor
    chat_orchestrator: ChatOrchestrator
    analysis_service: AnalysisService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    identity_verifier = SupabaseIdentityVerifier(supabase_client)
    object_store = SupabaseObjectStore(
        supabase_client, bucket=resolved_settings.supabase_storage_bucket
    )
    session_store = SessionStore(SupabaseSessionRepository(supabase_client))
    usage_service = UsageService(SupabaseUsageRepository(supabase_client))

    chat_client = OpenAIChatClient.create(
        resolved_settings.openai_api_key, store=resolved_settings.openai_store
    )
    ocr_client = OpenAIOcrClient.create(
        resolved_settings.openai_api_key, store=resolved_settings.openai_store
    )
    document_extractor = DocumentExtractor(
        client=ocr_client, model=resolved_settings.openai_ocr_model
    )
    chat_orchestrator = ChatOrchestrator(
        session_store=session_store,
        object_store=object_store,
        extractor=document_extractor,
        chat_client=chat_client,
        usage_service=usage_service,
        model=resolved_settings.openai_model,
        system_prompt=resolved_settings.system_prompt,
        include_images=resolved_settings.chat_include_images,
    )
    analysis_service = AnalysisService(
        session_store=session_store,
        chat_client=chat_client,
        usage_service=usage_service,
        repository=SupabaseAnalysisRepository(supabase_client),
        model=resolved_settings.openai_model,
    )

    async def close_resources() -> None:
        await chat_client.close()
        await ocr_client.close()

    return AppContainer(
        settings=resolved_settings,
        identity_verifier=identity_verifier,
        object_store=object_store,
        session_store=session_store,
        usage_service=usage_service,
        document_extractor=document_extractor,
        chat_orchestrator=chat_orchestrator,
        analysis_service=analysis_service,
        close_resources=close_resources,
    )
