"""
Scan Shelf Script

Reads book records off a bookshelf photo and prints them in reading order.
"""
import argparse
import asyncio
import os
import sys

from dotenv import load_dotenv
from loguru import logger

# Add project root to python path to allow imports
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from shelfreader.config import Settings, setup_logging
from shelfreader.exceptions import ShelfReaderError
from shelfreader.scanner import ShelfScanner
from shelfreader.vision.image_ops import load_image


def print_progress(done: int, total: int):
    print(f"  [{done}/{total}]", end="\r", flush=True)


async def scan(image_path: str, settings: Settings, use_full_image: bool) -> int:
    image = load_image(image_path)
    print(f"Loaded {os.path.basename(image_path)} ({image.shape[1]}x{image.shape[0]})")

    scanner = ShelfScanner.from_settings(settings)
    result = await scanner.scan(image, use_full_image=use_full_image, on_progress=print_progress)

    print("\n" + "=" * 60)
    print(f"Found {len(result.books)} books (strategy: {result.strategy}, "
          f"{result.processing_time_ms:.0f} ms)")
    print("=" * 60)

    for number, book in enumerate(result.books, start=1):
        print(f"{number:>3}. {book.title}")
        print(f"     Author:    {book.author}")
        if book.publisher:
            print(f"     Publisher: {book.publisher}")

    if result.failures:
        print("-" * 60)
        for failure in result.failures:
            print(f"  {failure}")
        print(result.retry_message)

    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Read book titles and authors from a shelf photo")
    parser.add_argument("image_path", help="Path to the shelf photo")
    parser.add_argument("--full-image", action="store_true",
                        help="Skip spine detection and segment the whole image")
    parser.add_argument("--model", help="Path to trained spine detector weights")
    parser.add_argument("--log-level", help="Log level (default from SHELFREADER_LOG_LEVEL)")
    args = parser.parse_args()

    load_dotenv()
    settings = Settings.from_env()
    if args.model:
        settings.detector_model_path = args.model
    if args.log_level:
        settings.log_level = args.log_level.upper()

    setup_logging(settings.log_level)

    try:
        return asyncio.run(scan(args.image_path, settings, args.full_image))
    except ShelfReaderError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
