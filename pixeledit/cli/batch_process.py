import os
import sys
import json
import logging
import argparse
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from dotenv import load_dotenv
from tqdm import tqdm

# Load environment variables first
load_dotenv()

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,  # Set to INFO to reduce noise, or DEBUG for full detail
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)
# ───────────────────────────────────────────

from ..errors import InvalidParameter, PixelEditError
from ..pipeline.operation_dispatcher import OperationDispatcher
from ..services.pixel_buffer_service import PixelBufferService

logger = logging.getLogger(__name__)

OUTPUT_EXT = os.getenv("OUTPUT_IMG_EXT") or ".png"
OUTPUT_DIR = os.getenv("OUTPUT_DIR_PATH") or "edited"

_COMPRESS_EXTS = {"jpeg": ".jpg", "jpg": ".jpg", "webp": ".webp", "png": ".png"}


def load_operations(path: Path) -> List[dict]:
    """Read a JSON list of {kind, parameters} descriptors."""
    with open(path, "r", encoding="utf-8") as fh:
        operations = json.load(fh)
    if isinstance(operations, dict):
        operations = [operations]
    if not isinstance(operations, list):
        raise InvalidParameter(f"{path} must hold a JSON list of operations")
    return operations


def expand_inputs(inputs: Iterable[str], image_service: PixelBufferService) -> Iterator[Path]:
    """Files are taken as given; directories contribute their image files."""
    for item in inputs:
        path = Path(item)
        if path.is_dir():
            yield from image_service.stream_paths(path)
        else:
            yield path


def output_settings(dispatcher: OperationDispatcher, operations: List[dict], ext: str):
    """The last compress descriptor, if any, decides the encoder format and quality."""
    quality = None
    for operation in operations:
        kind, args = dispatcher.parse(operation)
        if kind == "compress":
            ext, quality = _COMPRESS_EXTS[args["format"]], args["quality"]
    return ext, quality


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Apply a list of pixel operations to a batch of images")
    ap.add_argument("images", nargs="+", help="image files or directories")
    ap.add_argument("--ops", required=True, help="JSON file with a list of operation descriptors")
    ap.add_argument("--out", default=OUTPUT_DIR, help="output directory")
    ap.add_argument("--ext", default=OUTPUT_EXT, help="output extension, e.g. .png")
    args = ap.parse_args(argv)

    image_service = PixelBufferService()
    dispatcher = OperationDispatcher()

    try:
        operations = load_operations(Path(args.ops))
        ext, quality = output_settings(dispatcher, operations, args.ext)
    except (OSError, ValueError, PixelEditError) as err:
        logger.error(f"Cannot use operations file {args.ops}: {err}")
        return 1

    out_dir = Path(args.out)
    paths = list(expand_inputs(args.images, image_service))
    logger.info(f"Processing {len(paths)} images with {len(operations)} operations → {out_dir}")

    failures = 0
    for path in tqdm(paths, desc="images", ncols=70):
        try:
            buffer = image_service.load(path)
            result = dispatcher.apply_all(buffer, operations)
            saved = image_service.save(result, out_dir / f"{path.stem}{ext}", quality)
            logger.debug(f"Saved {saved}")
        except (OSError, PixelEditError) as err:
            failures += 1
            logger.warning(f"Failed on {path}: {err}")

    logger.info(f"Done: {len(paths) - failures} saved, {failures} failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
