"""CLI entry point for the script-to-screen studio."""

import asyncio
import base64
import logging
import mimetypes
import re
import typer
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import config
from .models import Archetype, CameraMovement, Genre, GenerationConfig, Mood, MovieScene, Phase
from .services import CredentialManager, GeminiClient
from .studio import Production, write_subtitles

app = typer.Typer(
    name="script2screen",
    help="Turn a screenplay PDF into a short AI-generated scene",
    no_args_is_help=True
)

BILLING_DOCS_URL = "https://ai.google.dev/gemini-api/docs/billing"
_KEY_PARAM = re.compile(r"([?&])key=[^&\s]*(&?)")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"script2screen version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
) -> None:
    """Script2Screen - Direct a cinematic scene from your screenplay."""
    pass


@app.command()
def options() -> None:
    """List the creative parameters available for a production."""
    catalogue = [
        ("Genres", Genre),
        ("Moods", Mood),
        ("Character archetypes", Archetype),
        ("Camera movements", CameraMovement),
    ]
    for title, enum_cls in catalogue:
        typer.echo(f"{title}:")
        for member in enum_cls:
            typer.echo(f"   • {member.value}")


def _prompt_for_key() -> str:
    typer.echo("🔑 Connect your Gemini API key to enter the director's chair.")
    typer.echo(f"   Billing documentation: {BILLING_DOCS_URL}")
    return typer.prompt("   API key", hide_input=True)


def _slug(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "scene"


def _save_storyboard(data_uri: str, directory: Path) -> Path:
    """Decode the storyboard data URI into an image file."""
    header, encoded = data_uri.split(",", 1)
    mime_type = header[len("data:"):].split(";")[0]
    extension = mimetypes.guess_extension(mime_type) or ".png"
    path = directory / f"storyboard{extension}"
    directory.mkdir(parents=True, exist_ok=True)
    path.write_bytes(base64.b64decode(encoded))
    return path


def _show_scene(scene: MovieScene) -> None:
    typer.echo(f"\n🎞️  {scene.title}")
    typer.echo(f"   {scene.genre} · {scene.mood}")
    typer.echo(f"   {scene.description}")
    if scene.characters:
        typer.echo(f"   Cast: {', '.join(scene.characters)}")
    prompt_preview = scene.visual_prompt[:70] + "..." if len(scene.visual_prompt) > 70 else scene.visual_prompt
    typer.echo(f"   → {prompt_preview}")


def _show_subtitles(scene: MovieScene) -> None:
    typer.echo("\n💬 Subtitles:")
    for number, cue in enumerate(scene.subtitles or [], start=1):
        typer.echo(f"   [{number}] {cue.start_time:.1f}s-{cue.end_time:.1f}s  {cue.text}")


def _review_subtitles(production: Production) -> None:
    """Let the user edit subtitle text and timing before rendering."""
    while True:
        scene = production.state.scene
        if scene is None or not scene.subtitles:
            return
        _show_subtitles(scene)
        if not typer.confirm("Edit a subtitle?", default=False):
            return

        index = typer.prompt("   Line number", type=int) - 1
        if not 0 <= index < len(scene.subtitles):
            typer.echo(f"   ⚠️  No subtitle line {index + 1}")
            continue

        cue = scene.subtitles[index]
        production.update_subtitle_text(index, typer.prompt("   Text", default=cue.text))
        production.update_subtitle_time(
            index, "start_time", typer.prompt("   Start (seconds)", default=str(cue.start_time))
        )
        production.update_subtitle_time(
            index, "end_time", typer.prompt("   End (seconds)", default=str(cue.end_time))
        )


def _without_key(text: str) -> str:
    """Strip ``key=`` query parameters so links can be shown safely."""
    return _KEY_PARAM.sub(lambda m: m.group(1) if m.group(2) else "", text)


async def _deliver(production: Production, client: GeminiClient, directory: Path) -> None:
    """Download the render and write subtitle files next to it."""
    state = production.state
    video_path = directory / "render.mp4"
    try:
        await asyncio.to_thread(client.download_video, state.video_url, video_path)
        production.video_loaded()
        typer.echo(f"✅ Final render: {video_path}")
    except Exception as e:
        typer.echo(f"⚠️  Could not download the render: {_without_key(str(e))}")
        typer.echo(f"   Stream it from: {_without_key(state.video_url)}")

    if state.config.include_subtitles and state.scene and state.scene.subtitles:
        srt_path = write_subtitles(state.scene.subtitles, directory / "render.srt")
        write_subtitles(state.scene.subtitles, directory / "render.vtt")
        typer.echo(f"   Subtitles: {srt_path}")


async def _select_key(production: Production, auto: bool) -> None:
    """Open the key dialog, exiting when no credential can be obtained."""
    if auto:
        typer.echo("❌ No valid credential. Set GEMINI_API_KEY or enable Vertex AI mode.")
        raise typer.Exit(1)
    await production.select_key()
    if production.phase is Phase.KEY_SELECTION:
        typer.echo(f"❌ {production.state.error}")
        raise typer.Exit(1)


async def _run_production(
    production: Production,
    client: GeminiClient,
    script: Path,
    output_dir: Path,
    auto: bool,
) -> None:
    """Walk one script through analysis, storyboard and render.

    If the session expires along the way, a new key is selected and the
    script is uploaded again; the creative settings carry over.
    """
    mime_type, _ = mimetypes.guess_type(script.name)
    data = script.read_bytes()

    while True:
        production.upload(script.name, mime_type, data)
        if production.phase is not Phase.CONFIGURE:
            typer.echo(f"❌ {production.state.error}")
            raise typer.Exit(1)

        if not production.can_request_storyboard():
            typer.echo("❌ Select at least one archetype to proceed (--archetype)")
            raise typer.Exit(1)

        if await _direct(production, client, output_dir, auto):
            return

        typer.echo("🔑 Select a new key to continue with the same settings.")
        await _select_key(production, auto)


async def _direct(
    production: Production,
    client: GeminiClient,
    output_dir: Path,
    auto: bool,
) -> bool:
    """Run storyboard and render for the uploaded script.

    Returns:
        False if the session expired, True once the production is finished.
    """
    while True:
        phase = await production.request_storyboard()
        if phase is Phase.STORYBOARD:
            break
        typer.echo(f"❌ {production.state.error}")
        if phase is Phase.KEY_SELECTION:
            return False
        if auto or not typer.confirm("Try again?", default=True):
            raise typer.Exit(1)

    scene = production.state.scene
    directory = output_dir / _slug(scene.title)
    _show_scene(scene)
    if scene.storyboard_image:
        typer.echo(f"   Storyboard: {_save_storyboard(scene.storyboard_image, directory)}")

    while True:
        if not auto:
            _review_subtitles(production)
            if not typer.confirm("\nRender the final video?", default=True):
                return True

        typer.echo("\n⏳ Rendering (this can take a few minutes)...")
        phase = await production.render_video()
        if phase is Phase.KEY_SELECTION:
            typer.echo(f"❌ {production.state.error}")
            return False
        if phase is Phase.STORYBOARD:
            typer.echo(f"❌ {production.state.error}")
            if auto:
                raise typer.Exit(1)
            continue

        await _deliver(production, client, directory)
        if auto:
            return True

        choice = typer.prompt("[r]egenerate, [e]dit storyboard, [n]ew production, [q]uit", default="q")
        choice = choice.strip().lower()[:1]
        if choice == "r":
            continue
        if choice == "e":
            production.edit_storyboard()
            continue
        if choice == "n":
            production.new_project()
            next_script = Path(typer.prompt("Path to the next script (PDF)"))
            if not next_script.exists():
                typer.echo(f"❌ Script not found: {next_script}")
                raise typer.Exit(1)
            await _run_production(production, client, next_script, output_dir, auto)
        return True


async def _produce(
    script: Path,
    options: GenerationConfig,
    output_dir: Path,
    auto: bool,
) -> None:
    credentials = CredentialManager(config, dialog=_prompt_for_key)
    client = GeminiClient(config)
    production = Production(client, credentials)

    last_progress = {"message": ""}

    def echo_progress(state) -> None:
        if state.progress and state.progress != last_progress["message"]:
            typer.echo(f"   🎬 {state.progress}")
        last_progress["message"] = state.progress

    production.session.subscribe(echo_progress)

    await production.start()
    if production.phase is Phase.KEY_SELECTION:
        await _select_key(production, auto)

    production.session.set_config(**options.model_dump())
    await _run_production(production, client, script, output_dir, auto)


@app.command()
def produce(
    script: Path = typer.Argument(
        ...,
        help="Screenplay PDF",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    preset: Optional[Path] = typer.Option(
        None,
        "--preset",
        "-p",
        help="YAML file with genre, mood, archetypes, camera and include_subtitles",
        exists=True,
        file_okay=True,
        dir_okay=False
    ),
    genre: Optional[Genre] = typer.Option(None, "--genre", "-g", help="Cinematic genre"),
    mood: Optional[Mood] = typer.Option(None, "--mood", "-m", help="Atmospheric mood"),
    archetypes: Optional[List[Archetype]] = typer.Option(
        None,
        "--archetype",
        "-a",
        help="Character archetype to feature (repeatable)"
    ),
    camera: Optional[CameraMovement] = typer.Option(None, "--camera", "-c", help="Camera movement"),
    subtitles: Optional[bool] = typer.Option(
        None,
        "--subtitles/--no-subtitles",
        help="Generate timed dialogue for the scene"
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output directory (defaults to S2S_OUTPUT_DIR)"
    ),
    auto: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Render straight after the storyboard without review prompts"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Enable verbose logging"
    ),
) -> None:
    """Analyze a script, storyboard a scene and render it with Veo."""
    setup_logging(verbose)

    try:
        options = GenerationConfig.from_yaml(preset) if preset else GenerationConfig()
    except Exception as e:
        typer.echo(f"❌ Error loading preset: {e}")
        raise typer.Exit(1)

    overrides = {
        "genre": genre,
        "mood": mood,
        "archetypes": archetypes or None,
        "camera": camera,
        "include_subtitles": subtitles,
    }
    options = options.model_copy(update={k: v for k, v in overrides.items() if v is not None})

    typer.echo(f"🎬 Producing: {script}")
    typer.echo(f"   {options.genre.value} · {options.mood.value} · {options.camera.value}")
    if options.archetypes:
        typer.echo(f"   Archetypes: {', '.join(a.value for a in options.archetypes)}")

    asyncio.run(_produce(script, options, output or config.output_dir, auto))


if __name__ == "__main__":
    app()
