import argparse
import signal
import sys

from .config import MarkerPoseConfig, load_config
from .transforms import RelativePoseStrategy
from .worker import MarkerPoseWorker


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Detect tags and report their relative pose")
    ap.add_argument("--config", required=True, help="Path to JSON/YAML config")

    ap.add_argument("--camera-name")
    ap.add_argument("--device")
    ap.add_argument("--fps", type=int)
    ap.add_argument("--width", type=int)
    ap.add_argument("--height", type=int)
    ap.add_argument("--out")
    ap.add_argument("--duration", type=float)
    ap.add_argument("--family")
    ap.add_argument("--tag-size-m", type=float)
    ap.add_argument("--tag1-id", type=int)
    ap.add_argument("--tag2-id", type=int)
    ap.add_argument(
        "--strategy",
        choices=[s.value for s in RelativePoseStrategy],
        help="Relative pose policy",
    )
    ap.add_argument("--dry-run", action="store_true")
    ap.add_argument("--max-frames", type=int)
    ap.add_argument("--save-frames", action="store_true")
    ap.add_argument("--no-save-frames", action="store_true")
    ap.add_argument("--log-level")

    return ap


def _apply_args(cfg: MarkerPoseConfig, args: argparse.Namespace) -> MarkerPoseConfig:
    device = args.device
    if isinstance(device, str) and device.isdigit():
        device = int(device)
    save_frames = None
    if args.save_frames:
        save_frames = True
    if args.no_save_frames:
        save_frames = False

    cfg.apply_overrides(
        camera_name=args.camera_name,
        device=device,
        fps=args.fps,
        width=args.width,
        height=args.height,
        session_root=args.out,
        duration_sec=args.duration,
        tag_family=args.family,
        tag_size_m=args.tag_size_m,
        tag1_id=args.tag1_id,
        tag2_id=args.tag2_id,
        relative_strategy=args.strategy,
        dry_run=args.dry_run if args.dry_run else None,
        max_frames=args.max_frames,
        save_frames=save_frames,
        log_level=args.log_level.upper() if args.log_level else None,
    )
    return cfg


def main(argv=None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    cfg = load_config(args.config)
    cfg = _apply_args(cfg, args).validate()

    worker = MarkerPoseWorker(cfg)

    def _handle_signal(_sig, _frame):
        worker.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_signal)

    summary = worker.run()
    print(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
