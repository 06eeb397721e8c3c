"""Supabase Storage bucket for meal photos."""

from dataclasses import dataclass

from supabase import Client

from platewise.services.meals import ImageStorage


@dataclass
class SupabaseImageStorage(ImageStorage):
    """Stores meal photos in a Supabase Storage bucket."""

    client: Client
    bucket: str = "meal-images"

    def upload(self, path: str, data: bytes, content_type: str) -> None:
        """Upload a blob without overwriting existing files."""
        self.client.storage.from_(self.bucket).upload(
            path,
            data,
            {"content-type": content_type, "upsert": "false"},
        )

    def public_url(self, path: str) -> str:
        """Return the public URL for a stored blob."""
        return self.client.storage.from_(self.bucket).get_public_url(path)
