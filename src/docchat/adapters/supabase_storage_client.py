"""Supabase Storage access for user uploads."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from docchat.errors import DocumentNotFound
from docchat.services.storage import ObjectStore, guess_mime_type


@dataclass
class SupabaseObjectStore(ObjectStore):
    """Downloads uploads from a Storage bucket after an ownership check."""

    client: Client
    bucket: str

    def download(self, path: str, owner_id: UUID) -> bytes:
        """Return file bytes when the ``documents`` row belongs to owner_id."""
        response = (
            self.client.table("documents")
            .select("id")
            .eq("file_path", path)
            .eq("user_id", str(owner_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            raise DocumentNotFound(f"Document {path} not found")
        return self.client.storage.from_(self.bucket).download(path)

    def get_mime_type(self, path: str) -> str:
        """Return the MIME type derived from the file extension."""
        return guess_mime_type(path)
