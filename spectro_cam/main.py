#!/usr/bin/env python3
"""Replay recorded frames through the spectrum pipeline."""
from __future__ import annotations

import argparse
from dataclasses import replace
import logging
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import numpy as np

from spectro_cam.app_context import AppContext
from spectro_cam.engine.linearization import Linearize
from spectro_cam.engine.settings_model import SettingsError
from spectro_cam.engine.spectrum_api import FeaturePoint

logger = logging.getLogger(__name__)


def load_frames(path: Path) -> np.ndarray:
    """Load a ``.npy`` stack shaped (frames, 3, N) or a single (3, N) frame."""

    frames = np.load(path, allow_pickle=False)
    if frames.ndim == 2:
        frames = frames[np.newaxis, ...]
    if frames.ndim != 3 or frames.shape[1] != 3 or not frames.shape[0]:
        raise ValueError(f"Expected frames shaped (F, 3, N), got {frames.shape}")
    return frames


def format_points(points: Iterable[FeaturePoint], kind: str) -> List[str]:
    return [f"{kind} {p.label} nm: {p.value:.6g}" for p in points]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("frames", type=Path, help="Recorded frames (.npy)")
    parser.add_argument("--settings", type=Path, default=None, help="Settings YAML")
    parser.add_argument("--buffer-size", type=int, default=None)
    parser.add_argument("--cutoff", type=float, default=None, help="Enable low-pass at this cutoff")
    parser.add_argument(
        "--linearize", choices=[mode.value for mode in Linearize], default=None
    )
    parser.add_argument("--reference", type=Path, default=None, help="Reference CSV for flat-fielding")
    parser.add_argument("--export", type=Path, default=None, help="Write the spectrum CSV here")
    parser.add_argument("--dips", action="store_true", help="Report dips as well as peaks")
    parser.add_argument("--save-settings", action="store_true")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    try:
        ctx = AppContext(args.settings)
    except SettingsError as exc:
        logger.error("%s", exc)
        return 2
    controller = ctx.controller

    settings = controller.snapshot_settings()
    post = settings.postprocessing
    if args.buffer_size is not None:
        post = replace(post, buffer_size=args.buffer_size)
    if args.cutoff is not None:
        post = replace(post, filter_enabled=True, filter_cutoff=args.cutoff)
    settings.postprocessing = post
    if args.linearize is not None:
        settings.calibration.linearize = Linearize.parse(args.linearize)
    errs = settings.validate()
    if errs:
        logger.error("Invalid options: %s", "; ".join(errs))
        return 2
    controller.submit_settings(settings)
    ctx.set_dirty(args.save_settings)

    try:
        frames = load_frames(args.frames)
    except (OSError, ValueError) as exc:
        logger.error("Could not load frames: %s", exc)
        return 1

    for frame in frames:
        controller.submit_frame(frame)
        controller.tick()
    if controller.last_result is not None and not controller.last_result.ok:
        logger.error("%s", controller.last_result.describe())
        return 1

    if args.reference is not None:
        step = controller.import_reference(args.reference)
        if step.ok:
            step = controller.calibrate_from_reference()
        if not step.ok:
            logger.error("%s", step.describe())
            return 1
        controller.rebuild_spectrum()

    for line in format_points(controller.feature_points(peaks=True), "peak"):
        print(line)
    if args.dips:
        for line in format_points(controller.feature_points(peaks=False), "dip"):
            print(line)

    if args.export is not None:
        result = controller.export_spectrum(args.export)
        logger.info("%s", result.describe())
        if not result.ok:
            return 1

    if not ctx.maybe_close():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
