"""
Entrada principal Chat Story
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, load_settings
from .domain.errors import ChatStoryError
from .pipeline import ChatVideoPipeline

console = Console()


def parse_range(value: str) -> Tuple[int, int]:
    """'3-10' -> (3, 10)"""
    try:
        start, end = (int(part) for part in value.split("-", 1))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Rango inválido: {value} (formato INICIO-FIN)")
    if start < 1 or end < start:
        raise argparse.ArgumentTypeError(f"Rango inválido: {value}")
    return start, end


def collect_scripts(inputs: List[str]) -> List[Path]:
    """Expande directorios a sus *.json (orden alfabético)."""
    scripts: List[Path] = []
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            scripts.extend(sorted(path.glob("*.json")))
        else:
            scripts.append(path)
    return scripts


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatstory", description="Generador de videos de chat verticales")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Ruta a config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Logging en nivel DEBUG")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_audio_options(p: argparse.ArgumentParser):
        p.add_argument("--bgm", help="Música de fondo (se repite en loop)")
        p.add_argument("--sfx", help="Sonido de notificación por mensaje")
        p.add_argument("--sting", help="Sonido de transición al iniciar el chat")
        p.add_argument("--keep-frames", action="store_true", help="Conservar los PNG capturados")

    render = sub.add_parser("render", help="Renderiza un guión")
    render.add_argument("script", help="Guión JSON")
    render.add_argument("-o", "--output", help="Nombre de salida (sin extensión)")
    render.add_argument("--range", type=parse_range, dest="dialogue_range", help="Exportar solo diálogos INICIO-FIN")
    add_audio_options(render)

    batch = sub.add_parser("batch", help="Renderiza varios guiones")
    batch.add_argument("inputs", nargs="+", help="Archivos JSON o directorios")
    add_audio_options(batch)

    timeline = sub.add_parser("timeline", help="Muestra la línea de tiempo calculada")
    timeline.add_argument("script", help="Guión JSON")
    timeline.add_argument("--json", dest="json_out", help="Guardar la línea de tiempo en JSON")

    return parser


def show_timeline(pipeline: ChatVideoPipeline, script_path: str, json_out: Optional[str]) -> None:
    timeline = pipeline.build_timeline(Path(script_path))

    table = Table(title=f"Línea de tiempo ({timeline.theme})")
    table.add_column("#", justify="right")
    table.add_column("Emisor", style="magenta")
    table.add_column("Tipo", style="cyan")
    table.add_column("Escribe", justify="right")
    table.add_column("Aparece", style="green", justify="right")
    table.add_column("Efecto", style="yellow")

    for entry in timeline.entries:
        table.add_row(
            str(entry.index + 1),
            entry.sender,
            entry.kind,
            f"{entry.typing_start:.2f}-{entry.typing_end:.2f}",
            f"{entry.appear_time:.2f}",
            entry.camera_effect or "",
        )

    console.print(table)
    console.print(
        f"Intro: {timeline.intro.total:.2f}s | Total: [bold]{timeline.total_duration:.2f}s[/bold]"
    )
    if json_out:
        path = timeline.write_json(json_out)
        console.print(f"[green]✓ Guardado en {path}[/green]")


def show_batch_summary(results) -> None:
    table = Table(title="Resumen del lote")
    table.add_column("Guión", style="magenta")
    table.add_column("Estado")
    table.add_column("Duración", justify="right")
    table.add_column("Salida / Error", max_width=60)

    for result in results:
        if result.success:
            table.add_row(result.name, "[green]OK[/green]", f"{result.duration:.1f}s", result.video_path)
        else:
            table.add_row(result.name, "[red]FALLÓ[/red]", "-", result.error or "")

    console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    print("🎬 Chat Story - Videos de conversación")
    try:
        pipeline = ChatVideoPipeline(load_settings(args.config))

        if args.command == "timeline":
            show_timeline(pipeline, args.script, args.json_out)
            return 0

        options = dict(
            bgm_path=args.bgm,
            sfx_path=args.sfx,
            sting_path=args.sting,
            keep_frames=args.keep_frames or None,
        )

        if args.command == "render":
            pipeline.render(
                Path(args.script),
                output_name=args.output,
                dialogue_range=args.dialogue_range,
                **options,
            )
            return 0

        scripts = collect_scripts(args.inputs)
        if not scripts:
            console.print("[red]No se encontraron guiones JSON[/red]")
            return 1
        results = pipeline.render_batch(scripts, **options)
        show_batch_summary(results)
        return 0 if any(r.success for r in results) else 1

    except ChatStoryError as e:
        console.print(f"[red]❌ {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
