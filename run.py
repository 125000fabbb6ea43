#!/usr/bin/env python3
"""
Treadmill gait analysis: offline (video) or live (webcam).
Usage:
  Offline: python run.py --video path/to/video.mp4 --speed 10 --unit kmh
  Live:    python run.py --live [--camera 0] [--no-warmup] [--calibrate]
Defaults for every engine option come from GAIT_* variables (a .env file is read).
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Run from project root so the package is importable without installing
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from treadmill_gait.config import EngineConfig
from treadmill_gait.export import write_csv, write_summary


def run_offline(video_path: str, config: EngineConfig, output_dir: str = "outputs") -> None:
    """Process video file: pose -> gait engine -> CSV + summary."""
    from treadmill_gait.offline import analyze_video

    engine = analyze_video(video_path, config)
    csv_path = write_csv(engine.rows, output_dir)
    write_summary(engine.rows, output_dir, engine.status())
    print(f"Offline done. Steps: {engine.metrics.step_count}. "
          f"Quality: {engine.quality.classification() or '-'}. CSV: {csv_path or '(no rows)'}")


def build_config(args: argparse.Namespace) -> EngineConfig:
    return EngineConfig.from_env(
        belt_speed=args.speed,
        speed_unit=args.unit,
        vis_thresh=args.vis_thresh,
        min_strike_ms=args.min_strike_ms,
        smoothing_window=args.smooth,
        ground_tolerance_px=args.ground_tol,
        ground_gate=not args.no_ground_gate,
    )


def main() -> None:
    _root = Path(__file__).resolve().parent
    load_dotenv()
    load_dotenv(_root / ".env")

    ap = argparse.ArgumentParser(description="Treadmill gait analysis: offline video or live webcam")
    ap.add_argument("--video", type=str, default=None, help="Path to video file (offline mode)")
    ap.add_argument("--live", action="store_true", help="Use live webcam")
    ap.add_argument("--camera", type=int, default=0, help="Camera device id (default 0)")
    ap.add_argument("--speed", type=float, default=None, help="Belt speed (default from GAIT_BELT_SPEED)")
    ap.add_argument("--unit", choices=("ms", "kmh"), default=None, help="Belt speed unit (m/s or km/h)")
    ap.add_argument("--vis-thresh", type=float, default=None, help="Landmark visibility threshold (0..1)")
    ap.add_argument("--min-strike-ms", type=float, default=None, help="Minimum ms between strikes of one foot")
    ap.add_argument("--smooth", type=int, default=None, help="Moving-average window (1..15)")
    ap.add_argument("--ground-tol", type=float, default=None, help="Ground tolerance radius in px (5..80)")
    ap.add_argument("--no-ground-gate", action="store_true", help="Accept peaks regardless of ground line")
    ap.add_argument("--no-warmup", action="store_true", help="Live: skip warm-up and countdown")
    ap.add_argument("--calibrate", action="store_true", help="Live: calibrate ground when a session starts")
    ap.add_argument("--output-dir", type=str, default="outputs", help="Output directory")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.live and args.video:
        print("Error: provide exactly one of --video or --live", file=sys.stderr)
        sys.exit(1)
    if not args.live and not args.video:
        print("Error: provide --video PATH or --live", file=sys.stderr)
        sys.exit(1)

    config = build_config(args)
    if config.belt_speed_ms <= 0:
        print("Warning: belt speed is 0; step/stride lengths will be empty", file=sys.stderr)

    if args.live:
        from treadmill_gait.live import run_live_pipeline

        try:
            run_live_pipeline(
                config=config,
                camera_id=args.camera,
                warm_up=not args.no_warmup,
                calibrate=args.calibrate,
                output_dir=args.output_dir,
            )
        except RuntimeError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        if not os.path.isfile(args.video):
            print(f"Error: video file not found: {args.video}", file=sys.stderr)
            sys.exit(1)
        try:
            run_offline(args.video, config, output_dir=args.output_dir)
        except FileNotFoundError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)


if __name__ == "__main__":
    main()
