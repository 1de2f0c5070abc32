"""Train an mnistnet network from a preset, an override file and flags."""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import threading
from pathlib import Path
from typing import Iterable, Mapping

from mnistnet.training import pipelines

LOG_LEVEL_ENV = "MNISTNET_LOG_LEVEL"

# (flag, config section, key, type)
_OVERRIDES = (
    ("data_dir", "data.options", "data_dir", str),
    ("train_limit", "data.options", "train_limit", int),
    ("test_limit", "data.options", "test_limit", int),
    ("epochs", "train", "epochs", int),
    ("batch_size", "train", "batch_size", int),
    ("lr", "train", "lr", float),
    ("seed", "train", "seed", int),
    ("run_dir", "train", "run_dir", str),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=sorted(pipelines.presets()),
        default="blobs-sigmoid",
        help="Starting configuration (default: %(default)s)",
    )
    parser.add_argument("--config", type=Path, help="JSON or YAML file merged over the preset")
    parser.add_argument("--list-presets", action="store_true", help="Print preset names and exit")
    parser.add_argument("--dump-config", type=Path, help="Write the resolved config as JSON")

    data = parser.add_argument_group("data")
    data.add_argument("--data-dir", help="Directory holding the MNIST IDX files")
    data.add_argument("--train-limit", type=int, help="Read at most N training images")
    data.add_argument("--test-limit", type=int, help="Read at most N test images")

    train = parser.add_argument_group("training")
    train.add_argument("--epochs", type=int, help="Passes over the training set")
    train.add_argument("--batch-size", type=int, help="Examples per gradient commit (1 = online)")
    train.add_argument("--lr", type=float, help="Learning rate")
    train.add_argument("--seed", type=int, help="Seed for initialisation and shuffling")
    train.add_argument("--run-dir", help="Where metrics, manifest and checkpoint are written")
    train.add_argument("--enable-plots", action="store_true", help="Also write loss.png")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log debug messages")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Log warnings only")
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = getattr(logging, os.getenv(LOG_LEVEL_ENV, "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def read_override(path: Path) -> dict:
    if path.suffix in {".yml", ".yaml"}:
        import yaml

        with path.open(encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}
    with path.open(encoding="utf-8") as handle:
        return json.load(handle)


def deep_merge(base: Mapping[str, object], override: Mapping[str, object]) -> dict:
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def resolve_config(args: argparse.Namespace) -> dict:
    config = pipelines.load_preset(args.preset)
    if args.config is not None:
        config = deep_merge(config, read_override(args.config))
    for flag, section, key, cast in _OVERRIDES:
        value = getattr(args, flag)
        if value is None:
            continue
        node = config
        for part in section.split("."):
            node = node.setdefault(part, {})
        node[key] = cast(value)
    if args.enable_plots:
        config.setdefault("train", {})["enable_plots"] = True
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.list_presets:
        print("\n".join(sorted(pipelines.presets())))
        raise SystemExit(0)

    config = resolve_config(args)
    if args.dump_config is not None:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    # Ctrl-C lets the current gradient commit finish, then training stops.
    stop = threading.Event()
    previous = None
    if threading.current_thread() is threading.main_thread():
        previous = signal.signal(signal.SIGINT, lambda *_: stop.set())
    try:
        result = pipelines.run_pipeline(config, should_stop=stop.is_set)
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)

    print(
        json.dumps(
            {
                "steps": result.steps,
                "stopped": stop.is_set(),
                "metrics": result.metrics_path,
                "manifest": result.manifest_path,
                "model": result.model_path,
            },
            sort_keys=True,
        )
    )


if __name__ == "__main__":
    main()
