"""
Welcome Card Renderer
Draws the member welcome image with Pillow
"""

import asyncio
import io
import logging
from typing import List, Optional

import aiohttp
import discord
from PIL import Image, ImageChops, ImageDraw, ImageFont

logger = logging.getLogger('guildkeeper.welcome_image')

WIDTH = 1024
HEIGHT = 512
AVATAR_SIZE = 180
AVATAR_X = 80
TEXT_X = 320
GRADIENT_START = (0x66, 0x7E, 0xEA)
GRADIENT_END = (0x76, 0x4B, 0xA2)
ACCENT_COLOR = (0x72, 0x89, 0xDA)
TEXT_COLOR = (255, 255, 255)
FETCH_TIMEOUT = aiohttp.ClientTimeout(total=10)


def _font(size: int, bold: bool = False) -> ImageFont.FreeTypeFont:
    name = "DejaVuSans-Bold.ttf" if bold else "DejaVuSans.ttf"
    try:
        return ImageFont.truetype(name, size)
    except OSError:
        return ImageFont.load_default(size=size)


def display_name_for_card(name: str) -> str:
    return name[:17] + "..." if len(name) > 20 else name


def wrap_text(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> List[str]:
    lines: List[str] = []
    line = ""

    for word in text.split():
        candidate = f"{line} {word}".strip()
        if line and draw.textlength(candidate, font=font) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate

    if line:
        lines.append(line)
    return lines


def _gradient_background() -> Image.Image:
    vertical = Image.linear_gradient('L').resize((WIDTH, HEIGHT))
    horizontal = Image.linear_gradient('L').rotate(90, expand=True).resize((WIDTH, HEIGHT))
    mask = ImageChops.add(vertical, horizontal, scale=2.0)

    start = Image.new('RGB', (WIDTH, HEIGHT), GRADIENT_START)
    end = Image.new('RGB', (WIDTH, HEIGHT), GRADIENT_END)
    return Image.composite(end, start, mask)


def _overlay() -> Image.Image:
    alphas = []
    for x in range(WIDTH):
        position = x / (WIDTH - 1)
        distance = abs(position - 0.5) * 2
        alphas.append(int(255 * (0.3 + 0.4 * distance)))

    alpha = Image.new('L', (WIDTH, 1))
    alpha.putdata(alphas)
    alpha = alpha.resize((WIDTH, HEIGHT))

    overlay = Image.new('RGBA', (WIDTH, HEIGHT), (0, 0, 0, 0))
    overlay.putalpha(alpha)
    return overlay


def _draw_avatar(card: Image.Image, avatar_bytes: Optional[bytes]):
    y = (HEIGHT - AVATAR_SIZE) // 2
    box = (AVATAR_X, y, AVATAR_X + AVATAR_SIZE, y + AVATAR_SIZE)
    draw = ImageDraw.Draw(card)

    avatar = None
    if avatar_bytes:
        try:
            avatar = Image.open(io.BytesIO(avatar_bytes)).convert('RGBA').resize((AVATAR_SIZE, AVATAR_SIZE))
        except OSError as e:
            logger.warning(f"Failed to decode avatar image: {e}")

    if avatar is not None:
        mask = Image.new('L', (AVATAR_SIZE, AVATAR_SIZE), 0)
        ImageDraw.Draw(mask).ellipse((0, 0, AVATAR_SIZE, AVATAR_SIZE), fill=255)
        card.paste(avatar, box[:2], mask)
        draw.ellipse(box, outline=ACCENT_COLOR, width=8)
    else:
        draw.ellipse(box, fill=ACCENT_COLOR)
        font = _font(72, bold=True)
        draw.text((AVATAR_X + AVATAR_SIZE // 2, y + AVATAR_SIZE // 2), "?", font=font, fill=TEXT_COLOR, anchor='mm')


def render_welcome_card(
    display_name: str,
    message: str,
    guild_name: str,
    member_count: int,
    avatar_bytes: Optional[bytes] = None,
    background_bytes: Optional[bytes] = None
) -> bytes:
    """Render the welcome card and return PNG bytes.

    Blocking; call through ``asyncio.to_thread`` from the event loop.
    """
    card = None
    if background_bytes:
        try:
            card = Image.open(io.BytesIO(background_bytes)).convert('RGB').resize((WIDTH, HEIGHT))
        except OSError as e:
            logger.warning(f"Failed to decode custom background, using default: {e}")

    if card is None:
        card = _gradient_background()

    card = card.convert('RGBA')
    card = Image.alpha_composite(card, _overlay())

    _draw_avatar(card, avatar_bytes)

    draw = ImageDraw.Draw(card)
    y = 160
    draw.text((TEXT_X, y), "Welcome!", font=_font(48, bold=True), fill=TEXT_COLOR, anchor='ls')

    y += 70
    draw.text((TEXT_X, y), display_name_for_card(display_name), font=_font(36, bold=True), fill=ACCENT_COLOR, anchor='ls')

    y += 50
    body_font = _font(24)
    for line in wrap_text(draw, message, body_font, WIDTH - TEXT_X - 50):
        draw.text((TEXT_X, y), line, font=body_font, fill=TEXT_COLOR, anchor='ls')
        y += 30

    draw.text(
        (AVATAR_X, HEIGHT - 60),
        f"{guild_name} • {member_count} members",
        font=_font(20),
        fill=(255, 255, 255, 204),
        anchor='ls'
    )

    buffer = io.BytesIO()
    card.convert('RGB').save(buffer, format='PNG')
    return buffer.getvalue()


async def fetch_image(session: aiohttp.ClientSession, url: str) -> Optional[bytes]:
    try:
        async with session.get(url, timeout=FETCH_TIMEOUT) as response:
            response.raise_for_status()
            return await response.read()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        logger.warning(f"Failed to fetch image {url}: {e}")
        return None


async def generate_welcome_image(
    member: discord.Member,
    message: str,
    background_url: Optional[str] = None,
    session: Optional[aiohttp.ClientSession] = None
) -> discord.File:
    owns_session = session is None
    session = session or aiohttp.ClientSession()

    try:
        avatar_bytes = await fetch_image(session, member.display_avatar.replace(format='png', size=256).url)
        background_bytes = await fetch_image(session, background_url) if background_url else None
    finally:
        if owns_session:
            await session.close()

    data = await asyncio.to_thread(
        render_welcome_card,
        member.display_name,
        message,
        member.guild.name,
        member.guild.member_count or 0,
        avatar_bytes,
        background_bytes
    )
    return discord.File(io.BytesIO(data), filename="welcome.png")
