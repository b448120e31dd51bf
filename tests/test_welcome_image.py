import io

from PIL import Image, ImageDraw, ImageFont

from guildkeeper.utils.welcome_image import HEIGHT, WIDTH, display_name_for_card, render_welcome_card, wrap_text

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _png(color, size=(64, 64)) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', size, color).save(buffer, format='PNG')
    return buffer.getvalue()


def test_render_default_card():
    data = render_welcome_card("newbie", "Welcome to the server!", "Test Guild", 42)

    assert data.startswith(PNG_SIGNATURE)
    with Image.open(io.BytesIO(data)) as image:
        assert image.size == (WIDTH, HEIGHT)


def test_render_with_avatar_and_background():
    data = render_welcome_card(
        "newbie",
        "Welcome!",
        "Test Guild",
        42,
        avatar_bytes=_png((255, 0, 0)),
        background_bytes=_png((0, 0, 255), (200, 100))
    )

    with Image.open(io.BytesIO(data)) as image:
        assert image.size == (WIDTH, HEIGHT)


def test_undecodable_images_fall_back():
    data = render_welcome_card("newbie", "Welcome!", "Test Guild", 1, avatar_bytes=b"junk", background_bytes=b"junk")
    assert data.startswith(PNG_SIGNATURE)


def test_display_name_truncation():
    assert display_name_for_card("short") == "short"
    assert display_name_for_card("x" * 20) == "x" * 20
    assert display_name_for_card("x" * 21) == "x" * 17 + "..."


def test_wrap_text_respects_width():
    draw = ImageDraw.Draw(Image.new('RGB', (10, 10)))
    font = ImageFont.load_default()
    text = "the quick brown fox jumps over the lazy dog " * 4

    lines = wrap_text(draw, text, font, 120)

    assert len(lines) > 1
    assert " ".join(lines) == text.strip()
    assert all(draw.textlength(line, font=font) <= 120 for line in lines if " " in line)
