from __future__ import annotations

import argparse
import logging
import subprocess
import time
from typing import Optional

from mandelbands.config import load_config, normalise_config
from mandelbands.errors import RenderError
from mandelbands.geometry import Viewport, parse_complex, parse_pair
from mandelbands.pipeline import allocate_pixels, default_workers, render_info, render_into, write_image
from mandelbands.util.logging_setup import configure_root_logging, get_logger, shutdown_logging
from mandelbands.util.manifest import build_manifest, write_manifest

def _git_commit() -> Optional[str]:
    try:
        r = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True, check=True)
        return r.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None

def _size_arg(s: str):
    pair = parse_pair(s, "x")
    if pair is None:
        raise argparse.ArgumentTypeError(f"error parsing image dimensions: {s!r} (expected WxH)")
    return pair

def _complex_arg(s: str) -> complex:
    c = parse_complex(s)
    if c is None:
        raise argparse.ArgumentTypeError(f"error parsing complex point: {s!r} (expected RE,IM)")
    return c

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mandelbands", description="Grayscale Mandelbrot renderer, one thread per row band.")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON. If omitted, built-in defaults are used.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG","INFO","WARNING","ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="render.log", help="Log file path (rotating). Set empty to disable file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Render a PNG image.",
                       epilog="Example: mandelbands render --output mandel.png --size 1000x750 "
                              "--upper-left=-1.20,0.35 --lower-right=-1,0.20")
    r.add_argument("--output", type=str, default=None, help="Output PNG file (defaults to config.output).")
    r.add_argument("--size", type=_size_arg, default=None, help="Image size WxH in pixels.")
    r.add_argument("--upper-left", type=_complex_arg, default=None, help="Upper left corner RE,IM (use --upper-left=RE,IM for negatives).")
    r.add_argument("--lower-right", type=_complex_arg, default=None, help="Lower right corner RE,IM.")
    r.add_argument("--workers", type=int, default=None, help="Worker threads (defaults to config.workers, then CPU count).")
    r.add_argument("--limit", type=int, default=None, help="Escape-time iteration limit.")
    r.add_argument("--manifest", type=str, default="artifacts/run.json", help="Run manifest path. Set empty to skip.")
    r.add_argument("--progress", action="store_true", help="Show a progress bar over completed bands.")

    return p

def _apply_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    if args.output:
        cfg["output"] = args.output
    if args.size:
        cfg["width"], cfg["height"] = args.size
    if args.upper_left is not None:
        cfg["upper_left"] = [args.upper_left.real, args.upper_left.imag]
    if args.lower_right is not None:
        cfg["lower_right"] = [args.lower_right.real, args.lower_right.imag]
    if args.workers is not None:
        cfg["workers"] = args.workers
    if args.limit is not None:
        cfg["limit"] = args.limit
    return normalise_config(cfg)

def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    configure_root_logging(level=log_level, console=True, log_file=log_file)

    logger = get_logger()

    try:
        if args.cmd == "render":
            cfg = _apply_overrides(normalise_config(load_config(args.config)), args)
            bounds = (cfg["width"], cfg["height"])
            viewport = Viewport(complex(*cfg["upper_left"]), complex(*cfg["lower_right"]))
            workers = cfg["workers"] or default_workers()

            pixels = allocate_pixels(bounds)
            start = time.perf_counter()
            bands = render_into(pixels, bounds, viewport, workers=workers, limit=cfg["limit"],
                                max_intensity=cfg["max_intensity"], progress=args.progress)
            elapsed_ms = (time.perf_counter() - start) * 1000.0

            write_image(cfg["output"], pixels, bounds)

            if args.manifest:
                info = render_info(bounds, workers, bands, cfg["limit"], elapsed_ms)
                write_manifest(args.manifest, build_manifest(config=cfg, render_info=info, bands=bands, git_commit=_git_commit()))
                logger.info("Run manifest written: %s", args.manifest)
            return 0

        raise RuntimeError("Unknown command.")
    except (ValueError, OSError, RenderError) as e:
        logger.error("Render failed: %s", e)
        return 1
    finally:
        shutdown_logging()

if __name__ == "__main__":
    raise SystemExit(main())
