"""
Open Graph image cards (1200x630 PNG) rendered with Pillow.

Plain layout: cream background, orange header bar, wrapped title text and a
footer line. Fonts are Pillow's bundled default at fixed sizes.
"""
import io
from typing import List, Optional

from PIL import Image, ImageDraw, ImageFont

WIDTH, HEIGHT = 1200, 630
MARGIN = 80

BACKGROUND = "#fffaed"
ACCENT = "#f17313"
INK = "#1c1917"
MUTED = "#78716c"
WHITE = "#ffffff"
GOLD = "#fbbf24"


def _font(size: int):
    return ImageFont.load_default(size=size)


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int, max_lines: int = 3) -> List[str]:
    """Greedy word wrap; the last line is ellipsized when text overflows."""
    words = (text or "").split()
    lines: List[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}".strip()
        if draw.textlength(candidate, font=font) <= max_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        current = word
        if len(lines) == max_lines:
            break
    if current and len(lines) < max_lines:
        lines.append(current)

    consumed = sum(len(line.split()) for line in lines)
    if consumed < len(words) and lines:
        last = lines[-1]
        while last and draw.textlength(f"{last}…", font=font) > max_width:
            last = last[:-1]
        lines[-1] = f"{last.rstrip()}…"
    return lines


def _canvas():
    image = Image.new("RGB", (WIDTH, HEIGHT), BACKGROUND)
    draw = ImageDraw.Draw(image)
    draw.rectangle([0, 0, WIDTH, 90], fill=ACCENT)
    draw.text((MARGIN, 26), "Daily Doodle Prompt", font=_font(36), fill=WHITE)
    return image, draw


def _footer(draw: ImageDraw.ImageDraw, text: str) -> None:
    draw.text((MARGIN, HEIGHT - 70), text, font=_font(26), fill=MUTED)


def _to_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_prompt_card(title: Optional[str], category: Optional[str] = None, day: Optional[str] = None) -> bytes:
    image, draw = _canvas()
    draw.text((MARGIN, 140), (category or "Creative").upper(), font=_font(30), fill=ACCENT)

    title_font = _font(72)
    y = 200
    for line in wrap_text(draw, f'"{title or "Daily Doodle Prompt"}"', title_font, WIDTH - 2 * MARGIN):
        draw.text((MARGIN, y), line, font=title_font, fill=INK)
        y += 88

    _footer(draw, f"Today's drawing prompt · {day}" if day else "Today's drawing prompt")
    return _to_png(image)


def render_profile_card(
    username: Optional[str],
    doodles: int = 0,
    streak: int = 0,
    badges: int = 0,
    title: Optional[str] = None,
    premium: bool = False,
) -> bytes:
    image, draw = _canvas()
    name = username or "Artist"

    # avatar initial
    draw.ellipse([MARGIN, 140, MARGIN + 160, 300], fill=ACCENT)
    draw.text((MARGIN + 80, 220), name[:1].upper(), font=_font(80), fill=WHITE, anchor="mm")

    draw.text((MARGIN + 200, 160), name, font=_font(56), fill=INK)
    if title:
        draw.text((MARGIN + 200, 235), f'"{title}"', font=_font(30), fill=MUTED)
    if premium:
        draw.rounded_rectangle([WIDTH - MARGIN - 180, 150, WIDTH - MARGIN, 200], radius=20, fill=GOLD)
        draw.text((WIDTH - MARGIN - 90, 175), "PREMIUM", font=_font(24), fill=INK, anchor="mm")

    column = (WIDTH - 2 * MARGIN) // 3
    for i, (value, label) in enumerate(((doodles, "Doodles"), (streak, "Day Streak"), (badges, "Badges"))):
        x = MARGIN + column * i + column // 2
        draw.text((x, 400), str(value), font=_font(64), fill=ACCENT, anchor="mm")
        draw.text((x, 460), label, font=_font(26), fill=MUTED, anchor="mm")

    _footer(draw, "See my doodles on Daily Doodle Prompt")
    return _to_png(image)


def render_doodle_card(prompt_title: Optional[str], username: Optional[str], caption: Optional[str] = None) -> bytes:
    image, draw = _canvas()
    title_font = _font(60)
    y = 150
    for line in wrap_text(draw, f'"{prompt_title or "Daily Doodle"}"', title_font, WIDTH - 2 * MARGIN, max_lines=2):
        draw.text((MARGIN, y), line, font=title_font, fill=INK)
        y += 76

    draw.text((MARGIN, y + 20), f"by {username or 'Artist'}", font=_font(36), fill=ACCENT)
    if caption:
        caption_font = _font(30)
        y += 90
        for line in wrap_text(draw, caption, caption_font, WIDTH - 2 * MARGIN, max_lines=3):
            draw.text((MARGIN, y), line, font=caption_font, fill=MUTED)
            y += 42

    _footer(draw, "A doodle on Daily Doodle Prompt")
    return _to_png(image)
