"""
Tests for card endpoints (creation, listing, image upload).

These tests verify:
  - Card creation requires a session and a non-blank name
  - Image uploads are normalized to JPEG, max 1200px wide, never upscaled
  - Only the allow-listed formats are accepted
  - A rejected upload leaves the card's image untouched
  - Only the filename is stored on the card; URLs are derived at read time
  - Missing storage configuration degrades reads to a null URL
"""

import re
from pathlib import Path

import pytest
from PIL import Image
from sqlalchemy import select

from cardsets.config import settings
from cardsets.main import app
from cardsets.models.card import Card
from cardsets.storage import get_storage

from conftest import declared_png

FILENAME_RE = re.compile(r"^\d+-\d+\.jpg$")


async def _create_card(client, name="Black Lotus") -> int:
    response = await client.post("/cards", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()["card"]["id"]


def _upload(data: bytes, filename: str = "upload.bin", content_type: str = "application/octet-stream"):
    return {"image": (filename, data, content_type)}


class TestCardCreation:
    """Tests for POST /cards."""

    async def test_create_card(self, authenticated_client):
        response = await authenticated_client.post("/cards", json={"name": "  Island  "})
        assert response.status_code == 201
        data = response.json()
        assert data["ok"] is True
        assert data["card"]["name"] == "Island"
        assert data["card"]["image"] is None
        assert isinstance(data["card"]["id"], int)

    async def test_create_card_blank_name(self, authenticated_client):
        response = await authenticated_client.post("/cards", json={"name": "   "})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation"
        assert "name" in data["details"]

    async def test_create_card_missing_name(self, authenticated_client):
        response = await authenticated_client.post("/cards", json={})
        assert response.status_code == 400
        assert "name" in response.json()["details"]

    async def test_create_card_requires_auth(self, client):
        response = await client.post("/cards", json={"name": "Island"})
        assert response.status_code == 401


class TestCardListing:
    """Tests for GET /cards."""

    async def test_list_cards(self, authenticated_client):
        first = await _create_card(authenticated_client, "Forest")
        second = await _create_card(authenticated_client, "Swamp")

        response = await authenticated_client.get("/cards")
        assert response.status_code == 200
        cards = response.json()["cards"]
        assert [c["id"] for c in cards] == [first, second]
        assert all(c["image"] is None for c in cards)

    async def test_list_cards_resolves_image_url(self, authenticated_client, make_image):
        card_id = await _create_card(authenticated_client)
        upload = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image("PNG"))
        )
        filename = upload.json()["card"]["image"]["filename"]

        response = await authenticated_client.get("/cards")
        image = response.json()["cards"][0]["image"]
        assert image == {"filename": filename, "url": f"/uploads/{filename}"}

    async def test_list_cards_without_storage_backend(self, authenticated_client, make_image):
        """With no storage backend the URL is null instead of an error."""
        card_id = await _create_card(authenticated_client)
        await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image("PNG"))
        )

        app.dependency_overrides[get_storage] = lambda: None
        response = await authenticated_client.get("/cards")
        assert response.status_code == 200
        image = response.json()["cards"][0]["image"]
        assert image["url"] is None
        assert FILENAME_RE.match(image["filename"])

    async def test_list_cards_requires_auth(self, client):
        response = await client.get("/cards")
        assert response.status_code == 401


class TestCardImageUpload:
    """Tests for POST /cards/{id}/image."""

    async def test_upload_png(self, authenticated_client, make_image, storage, db_session):
        card_id = await _create_card(authenticated_client)

        response = await authenticated_client.post(
            f"/cards/{card_id}/image",
            files=_upload(make_image("PNG", (64, 48)), "card.png", "image/png"),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        card = data["card"]
        assert card["id"] == card_id
        assert card["name"] == "Black Lotus"

        image = card["image"]
        assert FILENAME_RE.match(image["filename"])
        assert image["url"] == f"/uploads/{image['filename']}"
        assert (image["width"], image["height"]) == (64, 48)

        # Stored bytes are JPEG regardless of the upload format
        stored = storage.directory / image["filename"]
        assert stored.exists()
        with Image.open(stored) as img:
            assert img.format == "JPEG"

        # The row holds the filename, not the URL
        row = (await db_session.execute(select(Card).where(Card.id == card_id))).scalar_one()
        assert row.image == image["filename"]

    async def test_wide_image_is_downscaled(self, authenticated_client, make_image):
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image",
            files=_upload(make_image("JPEG", (2400, 1000))),
        )
        image = response.json()["card"]["image"]
        assert (image["width"], image["height"]) == (1200, 500)

    async def test_small_image_is_not_upscaled(self, authenticated_client, make_image):
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image",
            files=_upload(make_image("JPEG", (300, 420))),
        )
        image = response.json()["card"]["image"]
        assert (image["width"], image["height"]) == (300, 420)

    @pytest.mark.parametrize("fmt", ["JPEG", "WEBP", "GIF", "TIFF"])
    async def test_allowed_formats(self, authenticated_client, make_image, fmt):
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image(fmt))
        )
        assert response.status_code == 200, response.text

    async def test_disallowed_format_rejected(self, authenticated_client, make_image, db_session):
        """A BMP decodes fine but isn't on the allow-list."""
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image("BMP"), "card.bmp")
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "validation"
        assert "image" in data["details"]

        row = (await db_session.execute(select(Card).where(Card.id == card_id))).scalar_one()
        assert row.image is None

    async def test_undecodable_upload_rejected(self, authenticated_client, db_session):
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(b"definitely not an image")
        )
        assert response.status_code == 400
        assert "image" in response.json()["details"]

        row = (await db_session.execute(select(Card).where(Card.id == card_id))).scalar_one()
        assert row.image is None

    async def test_decompression_bomb_rejected(self, authenticated_client, db_session):
        """A few hundred bytes declaring 400M pixels is a 400, not a 500."""
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(declared_png(20_000, 20_000), "bomb.png")
        )
        assert response.status_code == 400
        assert "image" in response.json()["details"]

        row = (await db_session.execute(select(Card).where(Card.id == card_id))).scalar_one()
        assert row.image is None

    async def test_missing_file(self, authenticated_client):
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", data={"other": "field"}
        )
        assert response.status_code == 400
        assert "image" in response.json()["details"]

    async def test_oversized_file(self, authenticated_client, make_image, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 100)
        card_id = await _create_card(authenticated_client)
        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image("JPEG", (200, 200)))
        )
        assert response.status_code == 400
        assert "image" in response.json()["details"]

    async def test_unknown_card(self, authenticated_client, make_image):
        response = await authenticated_client.post(
            "/cards/9999/image", files=_upload(make_image("PNG"))
        )
        assert response.status_code == 404
        assert response.json() == {"ok": False, "error": "not_found"}

    @pytest.mark.parametrize("bad_id", ["abc", "0", "-3"])
    async def test_invalid_card_id(self, authenticated_client, make_image, bad_id):
        response = await authenticated_client.post(
            f"/cards/{bad_id}/image", files=_upload(make_image("PNG"))
        )
        assert response.status_code == 400
        assert "card_id" in response.json()["details"]

    async def test_upload_requires_auth(self, client, make_image):
        response = await client.post("/cards/1/image", files=_upload(make_image("PNG")))
        assert response.status_code == 401

    async def test_upload_without_storage_backend(self, authenticated_client, make_image, db_session):
        """No backend: the upload fails as an internal error and nothing is saved."""
        card_id = await _create_card(authenticated_client)
        app.dependency_overrides[get_storage] = lambda: None

        response = await authenticated_client.post(
            f"/cards/{card_id}/image", files=_upload(make_image("PNG"))
        )
        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "internal"}

        row = (await db_session.execute(select(Card).where(Card.id == card_id))).scalar_one()
        assert row.image is None

    async def test_local_uploads_are_served(self, client):
        """The local backend's directory is mounted at /uploads."""
        (Path(settings.UPLOAD_DIR) / "served-check.jpg").write_bytes(b"jpeg-bytes")
        response = await client.get("/uploads/served-check.jpg")
        assert response.status_code == 200
        assert response.content == b"jpeg-bytes"
