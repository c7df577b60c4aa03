"""Supabase Storage adapter for uploaded photos."""

from dataclasses import dataclass

from supabase import Client

from beztern.services.photos import PhotoStorage


@dataclass
class SupabasePhotoStorage(PhotoStorage):
    """Public buckets in Supabase Storage."""

    client: Client

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> None:
        self.client.storage.from_(bucket).upload(
            path,
            data,
            {"content-type": content_type, "upsert": "true" if upsert else "false"},
        )

    def public_url(self, bucket: str, path: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(path)
