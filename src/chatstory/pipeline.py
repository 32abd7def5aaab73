"""
Pipeline principal para orquestar la creación de videos de chat.
Coordina guión → línea de tiempo → captura → mezcla → encoder → loudness.
"""

import logging
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from .audio import AudioAssets, AudioTrackComposer, DurationProbe, LoudnessNormalizer, MixRenderer
from .audio.loudness import NormalizationResult
from .config import Settings, load_settings
from .director import ScriptParser
from .domain.errors import ChatStoryError
from .domain.models import ChatScript, Timeline
from .timeline import FrameStateFunction, TimelineCalculator
from .utils import DurationCache
from .video import ChatCompositor, Compositor, FrameCapture, VideoEncoder

load_dotenv()
logger = logging.getLogger(__name__)
console = Console()

ScriptSource = Union[str, Path, Dict[str, Any], ChatScript]
CompositorFactory = Callable[[ChatScript, Timeline], Compositor]


@dataclass
class RenderResult:
    """Resultado de un render (exitoso o no)."""
    name: str
    success: bool
    video_path: Optional[str] = None
    timeline_path: Optional[str] = None
    duration: float = 0.0
    frame_count: int = 0
    normalization: Optional[NormalizationResult] = None
    error: Optional[str] = None


def slugify(title: str) -> str:
    """Nombre de archivo seguro a partir del título (conserva letras unicode)."""
    slug = re.sub(r"[^\w]+", "_", title or "", flags=re.UNICODE).strip("_")
    return slug[:60] or "story"


class ChatVideoPipeline:
    """Orquestador principal del pipeline de videos de chat."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        compositor_factory: Optional[CompositorFactory] = None,
        show_progress: bool = True,
    ):
        """
        Inicializa el pipeline.

        Args:
            settings: Configuración (se carga config/config.yaml si es None)
            compositor_factory: Crea el compositor de un guión (ChatCompositor por defecto)
            show_progress: Mostrar barra de progreso en la captura
        """
        self.settings = settings or load_settings()
        self.output_dir = Path(self.settings.paths.output_dir)
        self.temp_dir = Path(self.settings.paths.temp_dir)
        self.cache_dir = Path(self.settings.paths.cache_dir)

        for dir_path in [self.output_dir, self.temp_dir, self.cache_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)

        self.parser = ScriptParser()
        self.compositor_factory = compositor_factory or self._default_compositor
        self.show_progress = show_progress

        # Componentes lazy-loaded
        self._probe = None
        self._calculator = None
        self._composer = None
        self._mixer = None
        self._encoder = None
        self._normalizer = None

    @property
    def probe(self) -> DurationProbe:
        if self._probe is None:
            self._probe = DurationProbe(
                ffprobe_bin=self.settings.paths.ffprobe_bin,
                timeout=self.settings.audio.probe_timeout,
                fallback_duration=self.settings.audio.probe_fallback_duration,
                cache=DurationCache(cache_dir=str(self.cache_dir)),
            )
        return self._probe

    @property
    def calculator(self) -> TimelineCalculator:
        if self._calculator is None:
            self._calculator = TimelineCalculator(self.settings, probe=self.probe)
        return self._calculator

    @property
    def composer(self) -> AudioTrackComposer:
        if self._composer is None:
            self._composer = AudioTrackComposer(self.settings.audio)
        return self._composer

    @property
    def mixer(self) -> MixRenderer:
        if self._mixer is None:
            self._mixer = MixRenderer(sample_rate=self.settings.audio.sample_rate)
        return self._mixer

    @property
    def encoder(self) -> VideoEncoder:
        if self._encoder is None:
            render = self.settings.render
            self._encoder = VideoEncoder(
                ffmpeg_bin=self.settings.paths.ffmpeg_bin,
                crf=render.crf,
                preset=render.preset,
                hw_accel=render.hw_accel,
                audio_bitrate=self.settings.loudness.audio_bitrate,
            )
        return self._encoder

    @property
    def normalizer(self) -> LoudnessNormalizer:
        if self._normalizer is None:
            self._normalizer = LoudnessNormalizer(
                self.settings.loudness, ffmpeg_bin=self.settings.paths.ffmpeg_bin
            )
        return self._normalizer

    def _default_compositor(self, script: ChatScript, timeline: Timeline) -> Compositor:
        render = self.settings.render
        return ChatCompositor(
            script,
            timeline,
            width=render.width,
            height=render.height,
            assets_dir=self.settings.paths.assets_dir,
        )

    def load_script(self, source: ScriptSource) -> ChatScript:
        """Acepta un ChatScript, un dict, una ruta a JSON o el JSON en texto."""
        if isinstance(source, ChatScript):
            return source
        if isinstance(source, dict):
            return self.parser.parse(source)
        if isinstance(source, Path) or (isinstance(source, str) and source.strip().endswith(".json")):
            return self.parser.parse_file(source)
        return self.parser.parse(source)

    def build_timeline(self, source: ScriptSource) -> Timeline:
        return self.calculator.calculate(self.load_script(source))

    def render(
        self,
        source: ScriptSource,
        output_name: Optional[str] = None,
        bgm_path: Optional[str] = None,
        sfx_path: Optional[str] = None,
        sting_path: Optional[str] = None,
        dialogue_range: Optional[Tuple[int, int]] = None,
        keep_frames: Optional[bool] = None,
    ) -> RenderResult:
        """
        Ejecuta el pipeline completo para un guión.

        Args:
            source: Guión (ruta, dict, JSON o ChatScript)
            output_name: Nombre del archivo de salida (sin extensión)
            bgm_path: Música de fondo (loop)
            sfx_path: Sonido de notificación por mensaje
            sting_path: Sonido de transición intro -> conversación
            dialogue_range: (inicio, fin) 1-indexado para exportar una parte
            keep_frames: Conservar los PNG capturados

        Returns:
            RenderResult exitoso

        Raises:
            ScriptValidationError: guión inválido
            FatalRenderError: fallo de captura o encoder (no hay salida parcial)
        """
        # 1. Guión
        script = self.load_script(source)
        range_suffix = ""
        if dialogue_range:
            start, end = dialogue_range
            script = script.slice(start, end)
            range_suffix = f"_part{start}-{end}"
            logger.info(f"Filtrado a {len(script.dialogues)} diálogos (#{start}-#{end})")

        name = output_name or f"{slugify(script.title)}{range_suffix}"
        keep_frames = self.settings.render.keep_frames if keep_frames is None else keep_frames
        run_dir = self.temp_dir / name

        console.print(Panel(f"[bold]{script.title}[/bold]\n{len(script.dialogues)} mensajes", title="🎬 Chat Story"))

        try:
            # 2. Línea de tiempo
            timeline = self.calculator.calculate(script)
            timeline_path = timeline.write_json(self.output_dir / f"{name}.timeline.json")

            # 3. Captura de frames
            frame_state = FrameStateFunction(timeline, self.settings.effects)
            compositor = self.compositor_factory(script, timeline)
            capture = FrameCapture(
                compositor, fps=self.settings.render.fps, show_progress=self.show_progress
            ).capture(timeline, frame_state, run_dir / "frames")

            # 4. Mezcla de audio
            assets = AudioAssets(
                narration=script.narration_path if timeline.intro.has_narration else None,
                sting=sting_path,
                bgm=bgm_path,
                notification=sfx_path,
            )
            graph = self.composer.compose_timeline(timeline, assets)
            audio_path = None
            if not graph.is_empty:
                audio_path = self.mixer.render(graph, run_dir / "mix.wav")

            # 5. Encoder
            video_path = self.encoder.encode(
                capture.frames_dir,
                capture.fps,
                audio_path,
                timeline.total_duration,
                self.output_dir / f"{name}.mp4",
            )

            # 6. Loudness (nunca bloquea la entrega)
            normalization = None
            if audio_path and self.settings.loudness.enabled:
                normalization = self.normalizer.normalize(video_path)
                if not normalization.normalized:
                    console.print(f"[yellow]⚠ Audio sin normalizar: {normalization.message}[/yellow]")
        finally:
            if not keep_frames and run_dir.exists():
                shutil.rmtree(run_dir, ignore_errors=True)

        console.print(f"[green]✓ Video: {video_path} ({timeline.total_duration:.1f}s)[/green]")
        return RenderResult(
            name=name,
            success=True,
            video_path=str(video_path),
            timeline_path=str(timeline_path),
            duration=timeline.total_duration,
            frame_count=capture.frame_count,
            normalization=normalization,
        )

    def render_batch(self, sources: Iterable[ScriptSource], **options) -> List[RenderResult]:
        """
        Renderiza varios guiones de forma aislada.
        Un fallo fatal en un item no detiene el lote.
        """
        sources = list(sources)
        results: List[RenderResult] = []

        for i, source in enumerate(sources, 1):
            label = Path(source).stem if isinstance(source, (str, Path)) else f"item_{i}"
            console.print(f"\n[cyan]--- Video {i}/{len(sources)}: {label} ---[/cyan]")
            try:
                results.append(self.render(source, **options))
            except KeyboardInterrupt:
                console.print("\n[yellow]Lote cancelado por el usuario[/yellow]")
                break
            except ChatStoryError as e:
                logger.error(f"Falló el video {i} ({label}): {e}")
                console.print(f"[red]✗ {label}: {e}[/red]")
                results.append(RenderResult(name=label, success=False, error=str(e)))
            except Exception as e:
                logger.exception(f"Error inesperado en video {i} ({label}): {e}")
                console.print(f"[red]✗ {label}: {e}[/red]")
                results.append(RenderResult(name=label, success=False, error=str(e)))

        ok = sum(1 for r in results if r.success)
        console.print(f"\n[bold]Lote completo: {ok}/{len(sources)} videos generados[/bold]")
        return results
