"""CLI entry point: ``python -m lasercam scene.json --layer ID -o output.gcode``"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config.settings import AppSettings
from .core.errors import ExportError
from .core.job import Job
from .core.layer import EngraveSettings, PrintingMethod, ScanSettings
from .gcode.validate import PlatformEnvelope, validate_program
from .logging_config import setup_logging

logger = logging.getLogger("lasercam.cli")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="lasercam",
        description="Generate laser G-code from a layered scene file.",
    )
    p.add_argument("scene", type=Path, help="Scene JSON file")
    p.add_argument("--layer", default=None,
                   help="Layer id to export (default: every visible layer)")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output .gcode file with --layer, otherwise an output directory "
             "(default: next to the scene)",
    )
    p.add_argument("--platform", type=float, nargs=2, metavar=("W", "H"), default=None,
                   help="Platform size in mm (overrides the scene)")
    p.add_argument("--save-prefs", action="store_true",
                   help="Store --platform, speeds and --flip-y as preferences")

    # Scan parameters
    p.add_argument("--line-density", type=float, default=None,
                   help="Scan resolution in mm per pixel (default: layer setting)")
    p.add_argument("--halftone", action="store_true", help="Halftone dithering")
    p.add_argument("--negative", action="store_true", help="Invert luminance")
    p.add_argument("--h-flip", action="store_true", help="Mirror left/right")
    p.add_argument("--v-flip", action="store_true", help="Mirror top/bottom")
    p.add_argument("--min-power", type=float, default=0.0,
                   help="Scan minimum power, 0-100 (default: 0)")
    p.add_argument("--max-power", type=float, default=100.0,
                   help="Scan maximum power, 0-100 (default: 100)")
    p.add_argument("--burn-speed", type=float, default=None,
                   help="Scan burn speed in mm/min")
    p.add_argument("--overscan", type=float, default=None,
                   help="Overscan distance in mm (default: layer setting)")

    # Engrave parameters
    p.add_argument("--power", type=float, default=None,
                   help="Engrave power, 0-100 (default: layer setting)")
    p.add_argument("--feed-rate", type=float, default=None,
                   help="Engrave feed rate in mm/min")
    p.add_argument("--passes", type=int, default=1,
                   help="Engrave passes (default: 1)")
    p.add_argument("--flip-y", action="store_true",
                   help="Flip Y so machine Y grows upward")

    p.add_argument("--travel-speed", type=float, default=None,
                   help="Travel speed in mm/min")

    # Validation / logging
    p.add_argument("--skip-validate", action="store_true",
                   help="Skip platform-limit validation")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("--log-file", default=None, help="Also write logs to this file")

    return p


def _scan_settings(args: argparse.Namespace, layer, prefs: AppSettings) -> ScanSettings:
    overrides = dict(
        negative_image=args.negative,
        h_flipped=args.h_flip,
        v_flipped=args.v_flip,
        min_power=args.min_power,
        max_power=args.max_power,
        burn_speed=args.burn_speed or prefs.burn_speed,
        travel_speed=args.travel_speed or prefs.scan_travel_speed,
    )
    if args.halftone:
        overrides["is_halftone"] = True
    if args.line_density is not None:
        overrides["line_density"] = args.line_density
    if args.overscan is not None:
        overrides["overscan_dist"] = args.overscan
    return ScanSettings.from_layer(layer, **overrides)


def _engrave_settings(args: argparse.Namespace, layer, job: Job, prefs: AppSettings) -> EngraveSettings:
    overrides = dict(
        feed_rate=args.feed_rate or prefs.engrave_feed_rate,
        travel_speed=args.travel_speed or prefs.engrave_travel_speed,
        passes=args.passes,
        flip_y=args.flip_y or prefs.flip_y,
        canvas_height=job.canvas_height,
    )
    if args.power is not None:
        overrides["power"] = args.power
    return EngraveSettings.from_layer(layer, **overrides)


def _update_prefs(prefs: AppSettings, args: argparse.Namespace) -> None:
    if args.platform is not None:
        prefs.platform_width, prefs.platform_height = args.platform
    if args.burn_speed:
        prefs.burn_speed = args.burn_speed
    if args.feed_rate:
        prefs.engrave_feed_rate = args.feed_rate
    if args.travel_speed:
        prefs.scan_travel_speed = prefs.engrave_travel_speed = args.travel_speed
    if args.flip_y:
        prefs.flip_y = True
    prefs.save()
    logger.info("Saved preferences to %s", prefs._path())


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO, args.log_file)
    prefs = AppSettings.load()
    if args.save_prefs:
        _update_prefs(prefs, args)

    try:
        job = Job.load(args.scene, (prefs.platform_width, prefs.platform_height))
    except (FileNotFoundError, ValueError, KeyError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.platform is not None:
        job.platform_width, job.platform_height = args.platform

    if args.layer is not None:
        layer_ids = [args.layer]
    else:
        layer_ids = [l.id for l in job.layers if l.is_visible]
    if not layer_ids:
        print("Error: scene has no visible layers", file=sys.stderr)
        return 1

    envelope = PlatformEnvelope(x_max=job.platform_width, y_max=job.platform_height)
    written = []
    for layer_id in layer_ids:
        try:
            layer = job.get_layer(layer_id)
            if layer.printing_method is PrintingMethod.SCAN:
                lines = job.export_layer_lines(
                    layer_id, scan_settings=_scan_settings(args, layer, prefs),
                )
            else:
                lines = job.export_layer_lines(
                    layer_id, engrave_settings=_engrave_settings(args, layer, job, prefs),
                )
        except (ExportError, KeyError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

        if not args.skip_validate:
            result = validate_program(lines, envelope)
            if result.has_errors:
                print(f"VALIDATION ERRORS in layer {layer_id}:", file=sys.stderr)
                for issue in result.issues:
                    if issue.severity == "error":
                        print(f"  line {issue.line_number}: {issue.message}", file=sys.stderr)
                return 1
            warnings = [i for i in result.issues if i.severity == "warning"]
            if warnings:
                print(f"  Warning: {warnings[0].message} ({len(warnings)} warning(s) total)")

        if args.layer is not None and args.output is not None:
            output = args.output
        else:
            out_dir = args.output or args.scene.parent
            out_dir.mkdir(parents=True, exist_ok=True)
            output = out_dir / f"{args.scene.stem}_{layer_id}.gcode"
        output.write_text("\n".join(lines) + "\n", encoding="utf-8")
        written.append(output)
        print(f"Wrote {output}")

    logger.info("Exported %d layer(s)", len(written))
    return 0


if __name__ == "__main__":
    sys.exit(main())
