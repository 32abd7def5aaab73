"""
Compositor Visual
Dibuja un frame (1080x1920) a partir de la VisualScene calculada para t.
"""
import logging
import math
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from PIL import Image, ImageDraw, ImageFont

from ..domain.models import ChatScript, MediaAnimation, Timeline, TimelineEntry, VisualScene

logger = logging.getLogger(__name__)

BACKGROUND = (229, 221, 213)
HEADER = (7, 94, 84)
LEFT_BUBBLE = (255, 255, 255)
RIGHT_BUBBLE = (220, 248, 198)
DIVIDER_PILL = (225, 245, 254)
TEXT = (17, 27, 33)
NAME_TEXT = (7, 94, 84)
INTRO_BACKGROUND = (18, 18, 24)


class Compositor(Protocol):
    """Cualquier objeto capaz de producir los píxeles de un frame."""

    def render(self, t: float, scene: VisualScene) -> Image.Image:
        ...


def load_font(size: int) -> ImageFont.ImageFont:
    """Carga DejaVuSans; si no está disponible usa la fuente por defecto de Pillow."""
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


class ChatCompositor:
    """Renderiza la conversación estilo app de mensajería."""

    def __init__(
        self,
        script: ChatScript,
        timeline: Timeline,
        width: int = 1080,
        height: int = 1920,
        assets_dir: Optional[str] = None,
    ):
        self.script = script
        self.timeline = timeline
        self.width = width
        self.height = height
        self.assets_dir = Path(assets_dir) if assets_dir else None

        self.scale = width / 1080
        self.header_height = int(240 * self.scale)
        self.margin = int(36 * self.scale)
        self.max_bubble_width = int(width * 0.72)

        self.font = load_font(int(40 * self.scale))
        self.name_font = load_font(int(30 * self.scale))
        self.title_font = load_font(int(72 * self.scale))

        self._entries: Dict[int, TimelineEntry] = {e.index: e for e in timeline.entries}
        self._bubbles: Dict[int, Image.Image] = {}

    # ------------------------------------------------------------------
    # Frame
    # ------------------------------------------------------------------
    def render(self, t: float, scene: VisualScene) -> Image.Image:
        if scene.phase == "intro":
            return self._render_intro(scene)

        frame = Image.new("RGB", (self.width, self.height), BACKGROUND)
        self._draw_messages(frame, scene)
        if scene.typing_indicator.active:
            self._draw_typing(frame)
        self._draw_header(frame)
        if scene.overlay_text is not None:
            self._draw_overlay(frame, scene.overlay_text)

        return self._apply_camera(frame, scene)

    def _render_intro(self, scene: VisualScene) -> Image.Image:
        frame = Image.new("RGB", (self.width, self.height), INTRO_BACKGROUND)
        if scene.intro_opacity <= 0:
            return frame

        text = self.script.intro_text or self.script.title
        font = load_font(max(1, int(72 * self.scale * scene.intro_scale)))
        wrapped = textwrap.fill(text, width=18)

        layer = Image.new("RGBA", frame.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        box = draw.multiline_textbbox((0, 0), wrapped, font=font, align="center")
        x = (self.width - (box[2] - box[0])) / 2
        y = (self.height - (box[3] - box[1])) / 2
        alpha = int(255 * scene.intro_opacity)
        draw.multiline_text((x, y), wrapped, font=font, fill=(255, 255, 255, alpha), align="center")

        frame.paste(layer, (0, 0), layer)
        return frame

    def _draw_header(self, frame: Image.Image) -> None:
        draw = ImageDraw.Draw(frame)
        draw.rectangle((0, 0, self.width, self.header_height), fill=HEADER)
        name = self.script.intro_text or self.script.title
        draw.text((self.margin, self.header_height - int(90 * self.scale)), name,
                  font=self.title_font if len(name) < 16 else self.font, fill=(255, 255, 255))

    # ------------------------------------------------------------------
    # Mensajes
    # ------------------------------------------------------------------
    def _draw_messages(self, frame: Image.Image, scene: VisualScene) -> None:
        # Layout de abajo hacia arriba: el último mensaje queda pegado al fondo
        bottom = self.height - int(200 * self.scale)
        if scene.typing_indicator.active:
            bottom -= int(110 * self.scale)

        placements: List[Tuple[Image.Image, int, int]] = []
        y = bottom
        for index in sorted(scene.visible_message_ids, reverse=True):
            entry = self._entries[index]
            bubble = self._bubble(entry)
            animation = scene.media_animations.get(index)
            if animation is not None:
                bubble = self._animate(bubble, animation)

            y -= bubble.height
            if y + bubble.height < self.header_height:
                break
            placements.append((bubble, self._bubble_x(entry, bubble), y))
            y -= int(24 * self.scale)

        for bubble, x, top in placements:
            frame.paste(bubble, (x, top), bubble)

    def _bubble_x(self, entry: TimelineEntry, bubble: Image.Image) -> int:
        if entry.kind == "time_divider":
            return (self.width - bubble.width) // 2
        if entry.side == "right":
            return self.width - self.margin - bubble.width
        return self.margin

    def _bubble(self, entry: TimelineEntry) -> Image.Image:
        cached = self._bubbles.get(entry.index)
        if cached is None:
            cached = self._build_bubble(entry)
            self._bubbles[entry.index] = cached
        return cached

    def _build_bubble(self, entry: TimelineEntry) -> Image.Image:
        dialogue = self.script.dialogues[entry.index]
        pad = int(24 * self.scale)

        if entry.kind == "time_divider":
            return self._pill(entry.caption or "", DIVIDER_PILL)

        lines = textwrap.wrap(dialogue.message, width=28) if dialogue.message else []
        media = self._load_media(dialogue.image_path) if dialogue.image_path else None

        name = None
        if entry.side == "left":
            character = self.script.character_for(entry.sender)
            name = character.name if character else entry.sender

        measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
        line_height = int(52 * self.scale)
        text_width = max((measure.textlength(line, font=self.font) for line in lines), default=0)
        if name:
            text_width = max(text_width, measure.textlength(name, font=self.name_font))
        name_height = int(40 * self.scale) if name else 0
        media_w, media_h = media.size if media else (0, 0)

        width = int(min(self.max_bubble_width, max(text_width, media_w) + 2 * pad))
        height = pad * 2 + name_height + len(lines) * line_height + (media_h + pad if media else 0)

        bubble = Image.new("RGBA", (max(width, 1), max(height, 1)), (0, 0, 0, 0))
        draw = ImageDraw.Draw(bubble)
        color = LEFT_BUBBLE if entry.side == "left" else RIGHT_BUBBLE
        draw.rounded_rectangle((0, 0, bubble.width - 1, bubble.height - 1), radius=int(28 * self.scale), fill=color)

        y = pad
        if name:
            draw.text((pad, y), name, font=self.name_font, fill=NAME_TEXT)
            y += name_height
        if media:
            bubble.paste(media, (pad, y), media)
            y += media_h + pad
        for line in lines:
            draw.text((pad, y), line, font=self.font, fill=TEXT)
            y += line_height
        return bubble

    def _pill(self, text: str, color: Tuple[int, int, int]) -> Image.Image:
        pad = int(18 * self.scale)
        measure = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
        w = int(measure.textlength(text, font=self.name_font)) + 2 * pad
        h = int(44 * self.scale) + pad
        pill = Image.new("RGBA", (max(w, 1), h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(pill)
        draw.rounded_rectangle((0, 0, w - 1, h - 1), radius=h // 2, fill=color)
        draw.text((pad, pad // 2), text, font=self.name_font, fill=TEXT)
        return pill

    def _load_media(self, image_path: str) -> Optional[Image.Image]:
        path = Path(image_path)
        if not path.is_absolute() and self.assets_dir and not path.exists():
            path = self.assets_dir / path
        try:
            with Image.open(path) as img:
                media = img.convert("RGBA")
        except (OSError, ValueError) as e:
            logger.warning(f"No se pudo cargar la imagen {image_path}: {e}")
            return None
        side = int(390 * self.scale)
        media.thumbnail((side, side))
        return media

    def _animate(self, bubble: Image.Image, animation: MediaAnimation) -> Image.Image:
        if animation.scale <= 0 or animation.opacity <= 0:
            return Image.new("RGBA", bubble.size, (0, 0, 0, 0))
        if animation.scale == 1.0 and animation.opacity == 1.0 and animation.translate_y == 0:
            return bubble

        w = max(1, int(bubble.width * animation.scale))
        h = max(1, int(bubble.height * animation.scale))
        scaled = bubble.resize((w, h), Image.Resampling.LANCZOS)
        alpha = scaled.getchannel("A").point(lambda a: int(a * animation.opacity))
        scaled.putalpha(alpha)

        canvas = Image.new("RGBA", bubble.size, (0, 0, 0, 0))
        x = (bubble.width - w) // 2
        y = min(bubble.height - h, (bubble.height - h) // 2 + int(animation.translate_y * self.scale))
        canvas.paste(scaled, (x, max(0, y)), scaled)
        return canvas

    # ------------------------------------------------------------------
    # Overlays y cámara
    # ------------------------------------------------------------------
    def _draw_typing(self, frame: Image.Image) -> None:
        draw = ImageDraw.Draw(frame)
        w, h = int(170 * self.scale), int(86 * self.scale)
        x0 = self.margin
        y0 = self.height - int(200 * self.scale) - h
        draw.rounded_rectangle((x0, y0, x0 + w, y0 + h), radius=h // 2, fill=LEFT_BUBBLE)
        r = int(10 * self.scale)
        for i in range(3):
            cx = x0 + int(50 * self.scale) + i * int(35 * self.scale)
            cy = y0 + h // 2
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=(150, 150, 150))

    def _draw_overlay(self, frame: Image.Image, text: str) -> None:
        band_h = int(220 * self.scale)
        top = (self.height - band_h) // 2
        overlay = Image.new("RGBA", frame.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        draw.rectangle((0, top, self.width, top + band_h), fill=(0, 0, 0, 170))
        tw = draw.textlength(text, font=self.title_font)
        draw.text(((self.width - tw) / 2, top + band_h // 3), text, font=self.title_font, fill=(255, 255, 255, 255))
        frame.paste(overlay, (0, 0), overlay)

    def _apply_camera(self, frame: Image.Image, scene: VisualScene) -> Image.Image:
        if scene.camera_zoomed:
            crop_w, crop_h = int(self.width * 0.85), int(self.height * 0.85)
            left = (self.width - crop_w) // 2
            top = (self.height - crop_h) // 2
            frame = frame.crop((left, top, left + crop_w, top + crop_h)).resize(
                (self.width, self.height), Image.Resampling.LANCZOS
            )

        if scene.camera_effect == "shake":
            # Desplazamiento determinista en función de t
            dx = int(14 * self.scale * math.sin(scene.time * 90))
            dy = int(10 * self.scale * math.cos(scene.time * 70))
            shaken = Image.new("RGB", frame.size, BACKGROUND)
            shaken.paste(frame, (dx, dy))
            frame = shaken
        elif scene.camera_effect == "darken":
            frame = Image.blend(frame, Image.new("RGB", frame.size, (0, 0, 0)), 0.45)

        return frame
