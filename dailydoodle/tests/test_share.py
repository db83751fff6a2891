"""
Share pages for crawlers and the generated 1200x630 cards.
"""
import io
from datetime import date

import pytest
from PIL import Image

from dailydoodle.features.prompts.source import prompt_source
from dailydoodle.features.share.images import HEIGHT, WIDTH, render_prompt_card
from dailydoodle.features.share.meta import MetaPage
from dailydoodle.features.social.service import social_service
from dailydoodle.features.profiles.service import profile_service

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"

SHEET = (
    "id,prompt,description,category,tags\n"
    '2026-03-11,"Robots <in> ""love""",,Characters,robots\n'
)


@pytest.fixture
def stub_sheet(monkeypatch):
    monkeypatch.setattr(prompt_source, "_fetcher", lambda url: SHEET)


def _image(data):
    return Image.open(io.BytesIO(data))


def test_render_escapes_everything():
    page = MetaPage(
        title='<script>alert("x")</script>',
        og_title="A & B",
        description='"quoted"',
        page_url="https://app.example/p?a=1&b=2",
        image_url="https://app.example/i.png",
        link_text="<b>link</b>",
    )
    html = page.render()

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "A &amp; B" in html
    assert "&quot;quoted&quot;" in html
    assert "https://app.example/p?a=1&amp;b=2" in html


def test_prompt_meta_page(client, stub_sheet):
    resp = client.get("/api/meta/prompt", params={"date": "2026-03-11"})

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "public, max-age=3600"
    assert resp.headers["content-type"].startswith("text/html")
    html = resp.text
    assert "Robots &lt;in&gt; &quot;love&quot;" in html
    assert "Wednesday, March 11, 2026" in html
    assert '<meta property="og:type" content="article">' in html
    assert "/prompt/2026-03-11" in html


def test_prompt_meta_errors(client, stub_sheet):
    assert client.get("/api/meta/prompt").status_code == 400
    assert client.get("/api/meta/prompt", params={"date": "11-03-2026"}).status_code == 400
    assert client.get("/api/meta/prompt", params={"date": "2026-03-12"}).status_code == 404


def test_doodle_meta_page(client):
    profile_service.ensure_profile("artist")
    profile_service.update_profile("artist", {"username": "sketch_bot"})
    doodle, _ = social_service.create_doodle(
        "artist",
        is_premium=True,
        prompt_id="2026-03-11",
        prompt_title="Lighthouse",
        image_url="https://cdn.example/d.png",
        caption="Stormy seas",
        today=date(2026, 3, 11),
    )

    html = client.get("/api/meta/doodle", params={"id": doodle.id}).text

    assert "&quot;Lighthouse&quot; by sketch_bot" in html
    assert "Stormy seas" in html
    assert f"/doodle/{doodle.id}" in html


def test_private_doodle_meta_is_404(client):
    doodle, _ = social_service.create_doodle(
        "artist",
        is_premium=True,
        prompt_id="2026-03-11",
        prompt_title="Lighthouse",
        image_url="https://cdn.example/d.png",
        is_public=False,
        today=date(2026, 3, 11),
    )
    assert client.get("/api/meta/doodle", params={"id": doodle.id}).status_code == 404
    assert client.get("/api/og/doodle", params={"id": doodle.id}).status_code == 404


def test_profile_meta_page(client):
    profile_service.ensure_profile("artist")
    profile_service.update_profile("artist", {"username": "sketch_bot"})

    resp = client.get("/api/meta/profile", params={"username": "sketch_bot"})

    html = resp.text
    assert '<meta property="og:type" content="profile">' in html
    assert "sketch_bot&#x27;s Profile" in html
    assert "0 doodles, 0 day streak, 0 badges" in html
    assert client.get("/api/meta/profile").status_code == 400
    assert client.get("/api/meta/profile", params={"id": "nobody"}).status_code == 404


def test_badge_meta_page(client):
    html = client.get("/api/meta/badge", params={"id": "creative_fire"}).text
    assert "Creative Fire" in html
    assert "/badges/share/creative_fire.png" in html
    assert client.get("/api/meta/badge", params={"id": "nope"}).status_code == 404


def test_prompt_card_dimensions():
    image = _image(render_prompt_card("A very long prompt title " * 10, "Places", "2026-03-11"))
    assert image.size == (WIDTH, HEIGHT) == (1200, 630)


@pytest.mark.parametrize(
    "path,params",
    [
        ("/api/og/prompt", {"title": "Lighthouse", "category": "Places", "date": "2026-03-11"}),
        ("/api/og/prompt", {}),
        ("/api/og/profile", {"username": "sketch_bot", "doodles": 4, "streak": 2, "badges": 3, "premium": "true"}),
        ("/api/og/doodle", {"title": "Lighthouse", "username": "sketch_bot"}),
    ],
)
def test_og_routes_return_png(client, path, params):
    resp = client.get(path, params=params)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "image/png"
    assert resp.headers["cache-control"] == "public, max-age=3600"
    assert resp.content.startswith(PNG_MAGIC)
    assert _image(resp.content).size == (1200, 630)
