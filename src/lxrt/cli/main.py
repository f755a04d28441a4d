#!/usr/bin/env python3
"""lxrt CLI - manage locally cached models.

Commands:
    pull      Download a model into the cache
    list      List cached models
    remove    Delete a cached model
    info      Show detected compute capabilities
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from lxrt import __version__
from lxrt.core.constants import DType, Modality


def cmd_pull(args: argparse.Namespace) -> int:
    """Download a model, rendering per-file progress."""
    from tqdm import tqdm

    from lxrt.hub import DoneEvent, ProgressEvent, pull_model

    print(f"Downloading model: {args.model}")
    print(f"  dtype: {args.dtype}")
    if args.cache_dir:
        print(f"  cache: {args.cache_dir}")

    with tqdm(total=100, unit="%", bar_format="{l_bar}{bar}| {n:.0f}% {postfix}") as bar:

        def on_event(event):
            if isinstance(event, ProgressEvent):
                bar.set_postfix_str(event.file or "")
                bar.update(event.percent - bar.n)
            elif isinstance(event, DoneEvent):
                bar.set_postfix_str("done")
                bar.update(100 - bar.n)

        try:
            path = pull_model(
                args.model,
                dtype=args.dtype,
                cache_dir=args.cache_dir,
                on_event=on_event,
                modality=args.modality,
            )
        except Exception as e:
            bar.close()
            print(f"Failed to download {args.model}: {e}", file=sys.stderr)
            return 1

    print(f"Model downloaded: {path}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """Print a table of cached models."""
    from lxrt.hub import format_bytes, list_models

    models = list_models(args.cache_dir)
    if not models:
        print("No cached models found.")
        return 0

    print(f"{'Model':<48} {'Size':>10}  Modified")
    print("-" * 80)
    for model in models:
        modified = datetime.fromtimestamp(model.last_modified).strftime("%Y-%m-%d %H:%M:%S")
        print(f"{model.name[:48]:<48} {format_bytes(model.size_bytes):>10}  {modified}")
    print(f"\nTotal: {len(models)} model(s)")
    return 0


def cmd_remove(args: argparse.Namespace) -> int:
    """Delete a cached model after confirmation."""
    from lxrt.hub import format_bytes, remove_model

    if not args.yes:
        answer = input(f"Remove {args.model} from the cache? [y/N] ").strip().lower()
        if answer not in ("y", "yes"):
            print("Cancelled.")
            return 1

    freed = remove_model(args.model, args.cache_dir)
    if freed is None:
        print(f"Model not cached: {args.model}")
        return 1
    print(f"Removed {args.model} ({format_bytes(freed)} freed)")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Print the detected capability descriptor and default backend."""
    from lxrt.backends import BackendSelector, detect

    caps = detect()
    selector = BackendSelector(caps)
    device = selector.default_device()
    print(f"Accelerated compute: {'yes' if caps.accelerated_compute_available else 'no'}")
    if caps.accelerator:
        print(f"Accelerator:         {caps.accelerator} ({caps.device_name or 'unknown'}, {caps.gpu_mem_gb:.1f} GB)")
    print(f"CPU cores:           {caps.cpu_count}")
    print(f"Default device:      {device.value} ({selector.default_dtype(device).value})")
    print(f"Fallback order:      {' -> '.join(d.value for d in selector.fallback_order(device))}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="lxrt",
        description="lxrt - local model runtime",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Pull command
    pull_parser = subparsers.add_parser("pull", help="Download a model")
    pull_parser.add_argument("model", help="Hub model id, or a preset name with --modality")
    pull_parser.add_argument(
        "--dtype", default=DType.FP32.value, choices=[d.value for d in DType], help="Intended precision"
    )
    pull_parser.add_argument("--cache-dir", type=Path, default=None, help="Cache directory")
    pull_parser.add_argument(
        "--modality", choices=[m.value for m in Modality], default=None, help="Resolve MODEL as a preset"
    )
    pull_parser.set_defaults(func=cmd_pull)

    # List command
    list_parser = subparsers.add_parser("list", help="List cached models")
    list_parser.add_argument("--cache-dir", type=Path, default=None, help="Cache directory")
    list_parser.set_defaults(func=cmd_list)

    # Remove command
    remove_parser = subparsers.add_parser("remove", help="Delete a cached model")
    remove_parser.add_argument("model", help="Hub model id")
    remove_parser.add_argument("--cache-dir", type=Path, default=None, help="Cache directory")
    remove_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    remove_parser.set_defaults(func=cmd_remove)

    # Info command
    info_parser = subparsers.add_parser("info", help="Show compute capabilities")
    info_parser.set_defaults(func=cmd_info)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
