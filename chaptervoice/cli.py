"""Command-line interface for chaptervoice."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from chaptervoice import __version__
from chaptervoice.audio.audio_utils import check_ffmpeg
from chaptervoice.catalog import DEFAULT_VOICE, default_catalog
from chaptervoice.config import ServiceConfig
from chaptervoice.errors import StorageError, ValidationError
from chaptervoice.models import VoiceSettings, check_text

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    config = ServiceConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="chaptervoice",
        description="Genera audio narrato da file di testo",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument(
        "input_files",
        nargs="*",
        help="File di testo da sintetizzare (max 10000 caratteri ciascuno)",
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=str(config.audio_dir),
        help="Directory dove salvare gli audio (default: <data-dir>/audio)",
    )
    parser.add_argument(
        "-e", "--engine",
        default=config.engine,
        help="Motore TTS da usare (default: edge)",
    )
    parser.add_argument(
        "-v", "--voice",
        default=DEFAULT_VOICE,
        help=f"Id della voce del catalogo (default: {DEFAULT_VOICE})",
    )
    parser.add_argument("-s", "--speed", type=float, default=1.0, help="Velocità 0.5-2.0 (default: 1.0)")
    parser.add_argument("--pitch", type=float, default=1.0, help="Pitch 0.5-2.0 (default: 1.0)")
    parser.add_argument("--stability", type=float, default=0.5, help="Stabilità 0-1 (default: 0.5)")
    parser.add_argument("--clarity", type=float, default=0.75, help="Chiarezza 0-1 (default: 0.75)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=config.provider_timeout,
        help="Timeout in secondi per la chiamata al provider",
    )
    parser.add_argument(
        "--list-voices",
        action="store_true",
        help="Elenca le voci del catalogo ed esci",
    )
    parser.add_argument(
        "--provider-voices",
        nargs="?",
        const="",
        default=None,
        metavar="LINGUA",
        help="Elenca le voci del motore TTS (filtro lingua opzionale, es. en) ed esci",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Abilita log dettagliati",
    )

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    catalog = default_catalog()

    if args.list_voices:
        print("\nVoci disponibili:\n")
        for group, voices in catalog.grouped_voices().items():
            print(f"  [{group}]")
            for v in voices:
                print(f"    {v.id:<22} {v.name:<10} {v.description}")
        sys.exit(0)

    from chaptervoice.tts import get_engine, import_engines

    if args.provider_voices is not None:
        import_engines()
        engine = get_engine(args.engine)
        engine.initialize()
        voices = asyncio.run(engine.list_voices(args.provider_voices or None))
        if not voices:
            print(f"Nessuna voce trovata con engine '{args.engine}'")
            sys.exit(0)
        print(f"\nVoci disponibili ({engine.name}):\n")
        for v in voices:
            print(f"  {v['name']:<35} {v['language']:<10} {v.get('gender', '')}")
        sys.exit(0)

    if not args.input_files:
        parser.error("Specificare almeno un file di testo")

    settings = VoiceSettings(
        voice=args.voice,
        speed=args.speed,
        pitch=args.pitch,
        stability=args.stability,
        clarity=args.clarity,
    )
    try:
        settings.validate()
    except ValidationError as e:
        parser.error(str(e))

    texts = []
    for name in args.input_files:
        path = Path(name)
        if not path.is_file():
            parser.error(f"File non trovato: {path}")
        text = path.read_text(encoding="utf-8")
        try:
            check_text(text)
        except ValidationError as e:
            parser.error(f"{path}: {e}")
        texts.append((path, text))

    from chaptervoice.gateway import SpeechGateway
    from chaptervoice.storage import ArtifactStore
    import_engines()
    engine = get_engine(args.engine)
    engine.initialize()
    check_ffmpeg()

    store = ArtifactStore(args.output_dir)
    gateway = SpeechGateway(
        engine,
        store,
        catalog,
        timeout=args.timeout,
        min_audio_bytes=config.min_audio_bytes,
        placeholder_seconds=config.placeholder_seconds,
    )

    try:
        results = asyncio.run(_synthesize_all(gateway, texts, settings))
    except KeyboardInterrupt:
        print("\n\nSintesi interrotta.")
        sys.exit(1)
    except StorageError as e:
        logging.error("Errore: %s", e)
        sys.exit(1)

    degraded = 0
    for path, result in results:
        print(f"{path} -> {store.path_for(result.artifact_id)}")
        if result.degraded:
            degraded += 1
            print(f"  audio segnaposto: {result.reason}")
    if degraded:
        print(f"\n{degraded} file generati con audio segnaposto; riprova più tardi.")


async def _synthesize_all(gateway, texts, settings):
    from chaptervoice.progress import ProgressReporter

    reporter = ProgressReporter(len(texts))
    results = []
    try:
        for path, text in texts:
            result = await gateway.synthesize(text, settings)
            reporter.update(path.name, degraded=result.degraded)
            results.append((path, result))
    finally:
        reporter.close()
    return results


if __name__ == "__main__":
    main()
