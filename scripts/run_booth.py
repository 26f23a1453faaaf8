#!/usr/bin/env python3
"""
Booth Runner
Turns a photo into an avatar from the command line.

Usage:
    python scripts/run_booth.py selfie.jpg                       # Call Replicate directly
    python scripts/run_booth.py selfie.jpg --api http://localhost:8000
    python scripts/run_booth.py selfie.jpg --output avatars/ --selection last
    python scripts/run_booth.py --check                          # Show configuration and exit
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import httpx

from avatarbooth.core.config import settings
from avatarbooth.core.logging import configure_logging
from avatarbooth.schemas.job import Job
from avatarbooth.services.booth import download_result, read_photo, transform_photo
from avatarbooth.services.booth_api import BoothApiClient
from avatarbooth.services.controller import ControllerState, JobController
from avatarbooth.services.errors import BoothError
from avatarbooth.services.extraction import ResultSelection
from avatarbooth.services.replicate import ReplicateClient
from avatarbooth.services.submission import JobParameters, SubmissionClient
from avatarbooth.services.upload import CloudinaryUploadService

logger = logging.getLogger("avatarbooth.runner")


def show_progress(state: ControllerState, job: Optional[Job]) -> None:
    if job is None:
        print(f"[{state.value}]")
    else:
        print(f"[{state.value}] job {job.id}: {job.status.value}")


async def run(args: argparse.Namespace) -> int:
    try:
        data, mime_type = read_photo(Path(args.photo))
    except (BoothError, OSError) as e:
        print(f"Error: {e}")
        return 1

    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as http:
        if args.api:
            backend = BoothApiClient(http, args.api)
        else:
            backend = ReplicateClient.from_settings(settings)

        uploader = CloudinaryUploadService.from_settings(http, settings)
        controller = JobController.from_settings(
            SubmissionClient(backend),
            backend,
            settings,
            selection=ResultSelection(args.selection or settings.RESULT_SELECTION),
            on_update=show_progress,
        )
        params = JobParameters.from_settings(settings, {"prompt": args.prompt, "seed": args.seed})

        try:
            result_url = await transform_photo(data, mime_type, uploader, controller, params)
        except BoothError as e:
            logger.error(e.message)
            print(f"Error: {e.message}")
            return 1

        print(f"Avatar ready: {result_url}")

        if args.output:
            try:
                saved = await download_result(http, result_url, Path(args.output))
            except BoothError as e:
                print(f"Error: {e.message}")
                return 1
            print(f"Saved to {saved}")

    return 0


def main():
    parser = argparse.ArgumentParser(description="Transform a photo into a booth avatar")
    parser.add_argument("photo", nargs="?", help="Photo to transform (jpg, png, webp)")
    parser.add_argument(
        "--api",
        help="Base URL of a running Avatar Booth API (default: call Replicate directly)"
    )
    parser.add_argument(
        "--output", "-o",
        help="File or directory to save the result into"
    )
    parser.add_argument(
        "--selection",
        choices=[s.value for s in ResultSelection],
        help=f"Which output to keep when several are returned (default: {settings.RESULT_SELECTION})"
    )
    parser.add_argument("--prompt", help="Override the configured prompt")
    parser.add_argument("--seed", type=int, help="Fixed seed (default: random)")
    parser.add_argument(
        "--check",
        action="store_true",
        help="Show configuration status and exit"
    )

    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL)

    # Configuration check only
    if args.check:
        print(f"Replicate configured: {settings.replicate_configured}")
        print(f"Cloudinary configured: {settings.cloudinary_configured}")
        print(f"Poll interval: {settings.POLL_INTERVAL_SECONDS}s, max wait: {settings.POLL_MAX_WAIT_SECONDS}s")
        sys.exit(0 if settings.cloudinary_configured else 1)

    if not args.photo:
        parser.error("photo is required")

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        logger.info("Interrupted, no further status checks")
        sys.exit(130)


if __name__ == "__main__":
    main()
