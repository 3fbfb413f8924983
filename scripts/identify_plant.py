#!/usr/bin/env python
"""Identify the plant in a local photograph using the configured Gemini model."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from pydantic import ValidationError

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plant_identifier.clients import GeminiClient, LocalImageFile  # noqa: E402
from plant_identifier.core.config import get_settings  # noqa: E402
from plant_identifier.core.logging import configure_logging  # noqa: E402
from plant_identifier.schemas import (  # noqa: E402
    ErrorKind,
    PlantRecord,
    WorkflowPhase,
    WorkflowState,
)
from plant_identifier.services import WorkflowController  # noqa: E402

EXIT_OK = 0
EXIT_INPUT_ERROR = 2
EXIT_SERVICE_ERROR = 3
EXIT_CONFIG_ERROR = 5

_INPUT_ERRORS = {
    ErrorKind.MISSING_INPUT,
    ErrorKind.FILE_TOO_LARGE,
    ErrorKind.READ_ERROR,
}

_SCALAR_LABELS = (
    ("이름", "name"),
    ("학명", "scientific_name"),
    ("난이도", "difficulty"),
    ("물주기", "water_frequency"),
    ("온도", "temperature"),
    ("습도", "humidity"),
)


def format_record(record: PlantRecord) -> str:
    """Render a record in the same label layout the model is asked to use."""
    lines = [f"{label}: {getattr(record, field)}" for label, field in _SCALAR_LABELS]
    for header, items in (("특징", record.features), ("주의사항", record.precautions)):
        lines.append(f"{header}:")
        lines.extend(f"- {item}" for item in items)
    return "\n".join(lines)


def _build_controller(model_name: str | None) -> WorkflowController:
    settings = get_settings()
    gemini_settings = settings.gemini
    if model_name:
        gemini_settings = gemini_settings.model_copy(update={"model_name": model_name})
    return WorkflowController(
        GeminiClient(gemini_settings),
        max_upload_bytes=settings.max_upload_bytes,
        default_mime_type=gemini_settings.default_mime_type,
    )


def _print_progress(state: WorkflowState) -> None:
    if not state.phase.is_terminal:
        print(f"[{state.phase.value}]", file=sys.stderr)


async def _identify(image: Path, model_name: str | None, verbose: bool) -> WorkflowState:
    controller = _build_controller(model_name)
    if verbose:
        controller.subscribe(_print_progress)
    return await controller.analyze(LocalImageFile(image))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Describe the plant in a photograph using Gemini."
    )
    parser.add_argument("image", type=Path, help="Path to the plant photograph.")
    parser.add_argument(
        "--model",
        dest="model",
        default=None,
        help="Optional override for the Gemini model name.",
    )
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the parsed record as JSON instead of labelled text.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log progress and each workflow phase to stderr.",
    )
    args = parser.parse_args(argv)

    if args.verbose:
        configure_logging("DEBUG")

    try:
        state = asyncio.run(_identify(args.image, args.model, args.verbose))
    except ValidationError as exc:
        print(
            "Settings validation failed. Is GEMINI_API_KEY set?\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_CONFIG_ERROR

    if state.phase is WorkflowPhase.SUCCEEDED and state.record is not None:
        if args.as_json:
            print(
                json.dumps(
                    state.record.model_dump(mode="json"), ensure_ascii=False, indent=2
                )
            )
        else:
            print(format_record(state.record))
        return EXIT_OK

    error = state.error
    print(error.message if error else "분석에 실패했습니다.", file=sys.stderr)
    if error is not None and error.kind in _INPUT_ERRORS:
        return EXIT_INPUT_ERROR
    return EXIT_SERVICE_ERROR


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
