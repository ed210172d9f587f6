#!/usr/bin/env python3
"""
Liquid Glass - Displacement Map Generator
CLI entry point. Also importable as a library.

Usage:
    python liquidglass.py render --width 300 --height 200 --out map.png
    python liquidglass.py render --effect pointer_lens --params radius=0.3 --pointer 0.5,0.5
    python liquidglass.py composite background.jpg --out glass.png --x 40 --y 40
    python liquidglass.py svg --width 300 --height 200
    python liquidglass.py list-effects
"""

import sys
import os
import argparse
import logging

# Add project root to path so imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.compositor import SoftwareCompositor
from core.displacement import PointerState, render_displacement_map
from core.image_io import load_frame, save_frame
from core.interaction import Viewport
from core.safety import GlassError, scaled_dimensions
from core.surface import GlassConfig, POST_FILTER_PRESETS, create_surface, destroy_surface
from effects import (
    CATEGORIES, DEFAULT_EFFECT, EFFECTS, get_effect, list_categories, list_effects,
)

__version__ = "0.1.0"


def _parse_param_value(val: str):
    """Safely parse a CLI parameter value (number or string)."""
    if val.lower().strip() in ('nan', 'inf', '-inf', '+inf', 'infinity', '-infinity'):
        raise ValueError(f"NaN/Inf not allowed: {val}")
    try:
        return int(val)
    except (ValueError, TypeError):
        pass
    try:
        return float(val)
    except (ValueError, TypeError):
        return val  # Keep as string


def _parse_params(pairs) -> dict:
    params = {}
    for p in pairs or []:
        if "=" not in p:
            raise ValueError(f"Param must be key=value, got: {p}")
        key, val = p.split("=", 1)
        params[key.strip()] = _parse_param_value(val.strip())
    return params


def _parse_point(text: str) -> tuple[float, float]:
    parts = text.replace(" ", "").split(",")
    if len(parts) != 2:
        raise ValueError(f"Point must be 'x,y', got: {text}")
    return float(parts[0]), float(parts[1])


def _config_from_args(args) -> GlassConfig:
    return GlassConfig(
        margin=args.margin,
        pixel_ratio=args.pixel_ratio,
        preset=args.preset,
        vectorized=not args.per_pixel,
    )


def cmd_render(args):
    """Render a displacement texture to PNG."""
    effect = get_effect(args.effect, **_parse_params(args.params))
    px, py = _parse_point(args.pointer)
    grid_w, grid_h = scaled_dimensions(args.width, args.height, args.pixel_ratio)
    result = render_displacement_map(
        grid_w, grid_h, effect, PointerState(px, py), vectorized=not args.per_pixel,
    )
    path = save_frame(result.texture, args.out)
    print(f"Displacement map: {path} ({result.width}x{result.height})")
    print(f"  Scale: {result.max_magnitude / args.pixel_ratio:.4f}")
    print(f"  Reads pointer: {'yes' if result.pointer_used else 'no'}")
    if result.non_finite_count:
        print(f"  Zeroed {result.non_finite_count} non-finite samples")


def cmd_composite(args):
    """Apply a glass surface to a backdrop image."""
    backdrop = load_frame(args.backdrop)
    bh, bw = backdrop.shape[:2]
    effect = get_effect(args.effect, **_parse_params(args.params))
    compositor = SoftwareCompositor()
    surface = create_surface(
        args.width, args.height, effect, compositor,
        viewport=Viewport(bw, bh), config=_config_from_args(args),
    )
    try:
        if args.x is not None or args.y is not None:
            # Drag from the centre of the surface to the requested position
            sx, sy = surface.position
            grab_x, grab_y = sx + args.width / 2, sy + args.height / 2
            tx = args.x if args.x is not None else sx
            ty = args.y if args.y is not None else sy
            surface.pointer_down(grab_x, grab_y)
            surface.pointer_move(grab_x + tx - sx, grab_y + ty - sy)
            surface.pointer_up()
        x, y = surface.position
        result = compositor.composite(backdrop, surface.filter_id, x, y)
        path = save_frame(result, args.out)
        print(f"Composited {args.width}x{args.height} glass at ({x:g}, {y:g}): {path}")
    finally:
        destroy_surface(surface)


def cmd_svg(args):
    """Print the SVG filter markup and CSS for a surface."""
    effect = get_effect(args.effect, **_parse_params(args.params))
    compositor = SoftwareCompositor()
    surface = create_surface(
        args.width, args.height, effect, compositor,
        viewport=Viewport(args.viewport_width, args.viewport_height),
        config=_config_from_args(args),
    )
    try:
        print(compositor.svg_markup())
        style = "; ".join(f"{k}: {v}" for k, v in surface.css_style().items())
        print(f"<div style=\"{style}\"></div>")
    finally:
        destroy_surface(surface)


def cmd_list_effects(args):
    """List all available effects, grouped by category."""
    total = 0
    for cat_key, cat_label in CATEGORIES.items():
        effects = list_effects(category=cat_key)
        if not effects:
            continue
        total += len(effects)
        print(f"\n  {cat_label} ({len(effects)})")
        print(f"  {'-' * 50}")
        for e in effects:
            print(f"    {e['name']:15s}  {e['description']}")
            params_str = ", ".join(f"{k}={v}" for k, v in e["params"].items())
            if params_str:
                print(f"    {'':15s}  Params: {params_str}")
    print(f"\n  Total: {total} effects across {len(list_categories())} categories\n")


def _add_surface_args(p):
    p.add_argument("--width", type=int, default=300, help="Surface width in pixels")
    p.add_argument("--height", type=int, default=200, help="Surface height in pixels")
    p.add_argument("--effect", choices=sorted(EFFECTS), default=DEFAULT_EFFECT)
    p.add_argument("--params", nargs="*", help="Effect params as key=value pairs")
    p.add_argument("--pixel-ratio", type=float, default=1.0, help="Texture pixels per surface pixel")
    p.add_argument("--per-pixel", action="store_true", help="Call the effect once per pixel")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="liquidglass",
        description="Liquid glass displacement map generator",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    # render
    p = sub.add_parser("render", help="Render a displacement texture to PNG")
    _add_surface_args(p)
    p.add_argument("--pointer", default="0,0", help="Pointer in surface space: 'x,y'")
    p.add_argument("--out", default="displacement.png", help="Output PNG path")

    # composite
    p = sub.add_parser("composite", help="Apply a glass surface to a backdrop image")
    p.add_argument("backdrop", help="Backdrop image path")
    _add_surface_args(p)
    p.add_argument("--x", type=float, help="Surface left edge (default: centred)")
    p.add_argument("--y", type=float, help="Surface top edge (default: centred)")
    p.add_argument("--margin", type=float, default=10.0, help="Gap to viewport edges")
    p.add_argument("--preset", choices=sorted(POST_FILTER_PRESETS), default="component")
    p.add_argument("--out", default="glass.png", help="Output PNG path")

    # svg
    p = sub.add_parser("svg", help="Print SVG filter markup for a surface")
    _add_surface_args(p)
    p.add_argument("--viewport-width", type=int, default=1280)
    p.add_argument("--viewport-height", type=int, default=800)
    p.add_argument("--margin", type=float, default=10.0, help="Gap to viewport edges")
    p.add_argument("--preset", choices=sorted(POST_FILTER_PRESETS), default="component")

    # list-effects
    sub.add_parser("list-effects", help="List all available effects")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "render": cmd_render,
        "composite": cmd_composite,
        "svg": cmd_svg,
        "list-effects": cmd_list_effects,
    }

    if args.command in commands:
        try:
            commands[args.command](args)
        except (GlassError, ValueError, OSError) as e:
            logging.exception("Command %s failed", args.command)
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
