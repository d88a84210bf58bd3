import argparse
import sys

import yaml

from dcmview.config import load_config
from dcmview.dicom import load_request
from dcmview.logging_conf import setup_logging
from dcmview.model import WindowParams
from dcmview.renderer import SessionRenderer
from dcmview.terminal import PROTOCOLS, detect_capability, get_cell_size, get_terminal_size


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show DICOM images in the terminal")
    parser.add_argument("files", nargs="*", metavar="FILE", help="DICOM file(s) to display (default: read stdin)")
    parser.add_argument("-W", "--width", type=int, default=None, help="Output width in terminal columns")
    parser.add_argument("-H", "--height", type=int, default=None, help="Output height in terminal rows")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Show DICOM metadata")
    parser.add_argument(
        "-n",
        "--show-filename",
        action="store_true",
        default=False,
        help="Print the file name above each image (always on for more than one file)",
    )
    parser.add_argument("--window-center", type=float, default=None, help="Window centre override")
    parser.add_argument("--window-width", type=float, default=None, help="Window width override")
    parser.add_argument(
        "--protocol",
        choices=PROTOCOLS,
        default=None,
        help="Force the image protocol instead of probing the terminal (default: from config, auto)",
    )
    parser.add_argument("--config", default=None, help="Path to a YAML configuration file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: from config, WARNING)")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.window_center is None) != (args.window_width is None):
        parser.error("--window-center and --window-width must be given together")

    try:
        cfg = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"dcmview: invalid configuration: {exc}", file=sys.stderr)
        return 2
    setup_logging(cfg, args.log_level)

    display = cfg["display"]
    capability = detect_capability(
        sys.stdout,
        timeout=float(cfg["probe"]["timeout"]),
        protocol=args.protocol or display["protocol"],
    )
    cell_size = get_cell_size(sys.stdout) or (int(display["cell_width"]), int(display["cell_height"]))
    renderer = SessionRenderer(
        capability,
        sys.stdout.buffer,
        terminal_size=get_terminal_size(),
        cell_size=cell_size,
        settings=display,
    )

    window = None
    if args.window_center is not None:
        window = WindowParams(center=args.window_center, width=args.window_width)

    if args.files:
        requests = (
            load_request(path, name=path, width=args.width, height=args.height, window=window) for path in args.files
        )
    else:
        requests = [load_request(sys.stdin.buffer, width=args.width, height=args.height, window=window)]

    show_filename = args.show_filename or len(args.files) > 1
    outcomes = renderer.render_all(requests, show_filename=show_filename, show_metadata=args.verbose)

    failed = [outcome for outcome in outcomes if not outcome.ok]
    for outcome in failed:
        print(f"dcmview: {outcome.name}: {outcome.error}", file=sys.stderr)
    if len(failed) == len(outcomes):
        return 1
    return 0
