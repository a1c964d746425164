"""Command line interface for the Polyglot translator."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Any, Dict, Iterable, List, Optional

from .configuration import PolyglotConfig, load_settings
from .errors import (
    OverwriteRefusedError,
    PolyglotError,
    TranslationProviderConfigurationError,
    UnsupportedFileTypeError,
)
from .jobs import FileQueue
from .languages import SUPPORTED_LANGUAGES, resolve_language
from .providers import build_backend
from .structures import FileJob, TranslationStatus
from .translator import DocumentTranslator, derive_output_filename

SUPPORTED_SUFFIXES = {".docx"}


def build_parser() -> argparse.ArgumentParser:
    codes = ", ".join(language.code for language in SUPPORTED_LANGUAGES)
    parser = argparse.ArgumentParser(
        prog="polyglot",
        description="Translate Word (.docx) documents while preserving layout.",
    )
    parser.add_argument(
        "input_files",
        nargs="*",
        help="One or more .docx files, translated one after another.",
    )
    parser.add_argument(
        "-t",
        "--target-language",
        help=f"Destination language: a code ({codes}) or any language name.",
    )
    parser.add_argument(
        "-o",
        "--output-dir",
        help="Directory for translated files. Defaults to each input's directory.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Translation backend: gemini, openai_compatible or echo.",
    )
    parser.add_argument(
        "-m",
        "--model",
        help="Provider-specific model identifier.",
    )
    parser.add_argument(
        "--base-url",
        help="Base URL of an OpenAI-compatible endpoint.",
    )
    parser.add_argument(
        "--api-key",
        help="API key for the selected provider, whichever layer selects it.",
    )
    parser.add_argument(
        "-b",
        "--batch-size",
        type=int,
        help="Number of text segments sent per request (default: 40).",
    )
    parser.add_argument(
        "--keep-fonts",
        action="store_true",
        help="Do not force a uniform font on every run.",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Allow overwriting output files that already exist.",
    )
    parser.add_argument(
        "--test-connection",
        action="store_true",
        help="Send a minimal request to the configured provider and exit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map CLI flags onto configuration keys."""

    overrides: Dict[str, Any] = {
        "LLM_PROVIDER": args.provider,
        "POLYGLOT_MODEL": args.model,
        "OPENAI_BASE_URL": args.base_url,
        "POLYGLOT_BATCH_SIZE": args.batch_size,
        # Applies to whichever provider the merged configuration selects.
        "POLYGLOT_API_KEY": args.api_key,
    }
    if args.keep_fonts:
        overrides["POLYGLOT_FORCE_FONT"] = False
    if args.debug_provider:
        overrides["POLYGLOT_PROVIDER_DEBUG"] = True
    return overrides


def validate_inputs(
    input_paths: List[pathlib.Path],
    output_dir: pathlib.Path | None,
    filenames: List[str],
    force_overwrite: bool,
) -> List[pathlib.Path]:
    """Check inputs and return the output path for each of them."""

    outputs: List[pathlib.Path] = []
    for input_path, filename in zip(input_paths, filenames):
        if not input_path.is_file():
            raise FileNotFoundError(
                f"Input file not found: {input_path}. Please provide a readable .docx file."
            )
        if input_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise UnsupportedFileTypeError(
                f"{input_path.name}: this file type isn't supported, please use .docx."
            )
        output_path = (output_dir or input_path.parent) / filename
        if output_path.exists() and not force_overwrite:
            raise OverwriteRefusedError(
                f"The output file {output_path} already exists. Rename it or use --force."
            )
        outputs.append(output_path)
    return outputs


def print_progress(job: FileJob) -> None:
    if job.status == TranslationStatus.TRANSLATING:
        print(f"  [{job.progress:3d}%] {job.name}: {job.current_action}")
    elif job.status in (TranslationStatus.PARSING, TranslationStatus.ERROR):
        print(f"  {job.name}: {job.status.value.lower()}")


def print_summary(jobs: Iterable[FileJob], outputs: Dict[str, pathlib.Path]) -> None:
    """Output a friendly report once processing completes."""

    print("\nTranslation summary:")
    for job in jobs:
        if job.status == TranslationStatus.COMPLETED:
            print(f"  {job.name}: completed ({job.tokens_used or 0} tokens)")
            print(f"    Output file: {outputs[job.job_id]}")
        else:
            print(f"  {job.name}: {job.status.value.lower()}")
            if job.error:
                print(f"    Error: {job.error}")


def run_connection_test(settings: PolyglotConfig) -> int:
    backend = build_backend(
        settings.backend_settings(), debug=settings.POLYGLOT_PROVIDER_DEBUG
    )
    if backend.test_connection():
        print(f"Connection OK ({backend.name}, {backend.settings.model_id}).")
        return 0
    print(f"Connection failed ({backend.name}, {backend.settings.model_id}).")
    return 1


def execute_translation(
    *,
    input_files: List[str],
    output_dir: str | None,
    target_language: str,
    settings: PolyglotConfig,
    force_overwrite: bool,
    verbose: bool,
) -> int:
    """Translate all inputs through a file queue and save the artifacts."""

    input_paths = [pathlib.Path(name).expanduser().resolve() for name in input_files]
    out_dir = pathlib.Path(output_dir).expanduser().resolve() if output_dir else None

    try:
        language = resolve_language(target_language)
        filenames = [derive_output_filename(path.name, language) for path in input_paths]
        output_paths = validate_inputs(input_paths, out_dir, filenames, force_overwrite)
    except (ValueError, FileNotFoundError, PolyglotError) as exc:
        print(exc)
        return 1

    backend = build_backend(
        settings.backend_settings(), debug=settings.POLYGLOT_PROVIDER_DEBUG
    )
    translator = DocumentTranslator(
        backend=backend,
        target_language=language,
        batch_size=settings.POLYGLOT_BATCH_SIZE,
        batch_delay=settings.POLYGLOT_BATCH_DELAY,
        font_name=settings.POLYGLOT_FONT_NAME if settings.POLYGLOT_FORCE_FONT else None,
    )

    queue = FileQueue(on_update=print_progress if verbose else None)
    jobs = queue.add_paths(input_paths)
    outputs: Dict[str, pathlib.Path] = {}
    exit_code = 0
    try:
        queue.translate_all(translator)
        if out_dir is not None:
            out_dir.mkdir(parents=True, exist_ok=True)
        for job, output_path in zip(jobs, output_paths):
            if job.status == TranslationStatus.COMPLETED and job.artifact is not None:
                outputs[job.job_id] = job.artifact.save(output_path)
            else:
                exit_code = 1
        print_summary(jobs, outputs)
    finally:
        queue.clear()
    return exit_code


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.DEBUG if args.debug_provider else (
            logging.INFO if args.verbose else logging.WARNING
        ),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(overrides=settings_overrides(args))
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1

    try:
        if args.test_connection:
            return run_connection_test(settings)

        if not args.input_files:
            parser.error("the following arguments are required: input_files")
        if not args.target_language:
            parser.error("the following arguments are required: -t/--target-language")

        return execute_translation(
            input_files=args.input_files,
            output_dir=args.output_dir,
            target_language=args.target_language,
            settings=settings,
            force_overwrite=args.force,
            verbose=args.verbose,
        )
    except TranslationProviderConfigurationError as exc:
        print(exc)
        return 1
    except KeyboardInterrupt:
        print("Translation interrupted by user.")
        return 2


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
