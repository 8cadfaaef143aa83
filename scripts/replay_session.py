from __future__ import annotations

import argparse
from pathlib import Path

import numpy as np

from skelcapture.config import FRAME_TIME_THRESHOLD_MS, SessionConfig, load_session_config, parse_session_time
from skelcapture.io.npz_io import frames_to_arrays, save_npz_compressed
from skelcapture.sync.replay import SkelReplay


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Replay a recorded skeleton session and export synced frames.")
    ap.add_argument("--session_json", default=None, help="Session JSON (overrides the three flags below)")
    ap.add_argument("--session_dir", default=None, help="Folder holding the .rec camera files")
    ap.add_argument("--session_time", default=None, help="Session start as HH_MM_SS_mmm (file name prefix)")
    ap.add_argument("--num_cameras", type=int, default=None)
    ap.add_argument(
        "--threshold_ms",
        type=int,
        default=None,
        help=f"Max offset between cameras within one frame (default: {FRAME_TIME_THRESHOLD_MS}).",
    )
    ap.add_argument("--out_npz", required=True, help="Output .npz with synced frames")
    ap.add_argument("--limit_frames", type=int, default=None)
    return ap.parse_args(argv)


def session_config_from_args(args: argparse.Namespace) -> SessionConfig:
    if args.session_json:
        cfg = load_session_config(args.session_json)
    else:
        if args.session_dir is None or args.session_time is None or args.num_cameras is None:
            raise ValueError("Either --session_json or all of --session_dir/--session_time/--num_cameras are required")
        cfg = SessionConfig(
            session_dir=Path(args.session_dir),
            session_timestamp=parse_session_time(args.session_time),
            num_cameras=int(args.num_cameras),
        )

    if args.threshold_ms is not None:
        cfg = SessionConfig(
            session_dir=cfg.session_dir,
            session_timestamp=cfg.session_timestamp,
            num_cameras=cfg.num_cameras,
            frame_time_threshold_ms=int(args.threshold_ms),
        )
    return cfg


def main(argv=None) -> None:
    args = parse_args(argv)
    cfg = session_config_from_args(args)

    replay = SkelReplay.from_config(cfg)

    frames = []
    for frame in replay.iter_synced_frames():
        frames.append(frame)
        if len(frames) % 500 == 0:
            print(f"[Replay] synced {len(frames)} frames (last offset={frame[0].frame_offset} ms)")
        if args.limit_frames is not None and len(frames) >= int(args.limit_frames):
            break

    arrays = frames_to_arrays(frames)
    out_npz = save_npz_compressed(
        Path(args.out_npz),
        **arrays,
        frame_time_threshold_ms=np.array([cfg.frame_time_threshold_ms], dtype=np.int32),
    )

    print(f"[Replay] Cameras: {cfg.num_cameras}")
    print(f"[Replay] Synced frames: {len(frames)}")
    print(f"[Replay] Dropped records: {replay.dropped}")
    print(f"Wrote:\n  {out_npz}")


if __name__ == "__main__":
    main()
