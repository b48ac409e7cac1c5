"""
CLI entrypoint. Use from project root:
  python -m veo_motion photo.jpg [--prompt "Gentle breeze"] [--aspect-ratio 9:16]
  python -m veo_motion photo.jpg --output loop.mp4 --timeout 900
"""

import argparse
import asyncio
import logging
import mimetypes
import shutil
import sys
import tempfile
from pathlib import Path

from veo_motion.config import get_settings
from veo_motion.errors import CredentialError
from veo_motion.models.generation import AspectRatio, GenerationStatus
from veo_motion.services.credentials import CredentialGate, PromptCredentialHost
from veo_motion.services.retrieval import EXPORT_FILENAME, ArtifactRetriever
from veo_motion.services.workflow import GenerationWorkflow

logger = logging.getLogger("veo_motion.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="veo_motion",
        description="Turn a still photo into a seamless looping video with Veo",
    )
    parser.add_argument("image", type=Path, help="Source image (JPEG, PNG, WebP...)")
    parser.add_argument("--prompt", default="", help="Describe the motion (optional)")
    parser.add_argument(
        "--aspect-ratio",
        choices=[r.value for r in AspectRatio],
        default=AspectRatio.LANDSCAPE.value,
        help="Output frame shape",
    )
    parser.add_argument("--output", type=Path, default=Path(EXPORT_FILENAME), help="Where to save the video")
    parser.add_argument(
        "--timeout", type=float, default=None,
        help="Give up after this many seconds (0 waits indefinitely)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if (args.verbose or settings.DEBUG) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if not args.image.is_file():
        print(f"Image not found: {args.image}", file=sys.stderr)
        return 2
    mime_type = mimetypes.guess_type(args.image.name)[0] or ""
    if not mime_type.startswith("image/"):
        print(f"Not an image file: {args.image}", file=sys.stderr)
        return 2

    gate = CredentialGate(PromptCredentialHost())
    with tempfile.TemporaryDirectory(prefix="veo_motion_") as media_volume:
        workflow = GenerationWorkflow(
            gate,
            retriever=ArtifactRetriever(gate, media_volume=media_volume),
            poll_timeout=args.timeout,
        )

        if not workflow.has_credential() and not workflow.request_credential():
            print(workflow.notice or "No API key configured.", file=sys.stderr)
            return 2

        workflow.select_image(args.image.read_bytes(), mime_type)
        workflow.set_prompt(args.prompt)
        workflow.set_aspect_ratio(args.aspect_ratio)

        try:
            snapshot = asyncio.run(workflow.generate())
        except KeyboardInterrupt:
            print("Generation cancelled.", file=sys.stderr)
            return 130
        except CredentialError as e:
            print(str(e), file=sys.stderr)
            return 2

        if snapshot.status != GenerationStatus.COMPLETE or workflow.artifact is None:
            print(snapshot.error or snapshot.notice or "Generation failed.", file=sys.stderr)
            return 1

        args.output.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(workflow.artifact.path, args.output)
        workflow.reset()

    print(f"Saved {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
