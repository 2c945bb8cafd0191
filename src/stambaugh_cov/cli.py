"""Command line interface for the project.

Commands:
- show-settings: print the resolved :class:`Settings`
- fit: fit one or two Stambaugh models on a return panel
- distance: stage-wise Mahalanobis distances and flagged outliers
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Iterable

from stambaugh_cov.config import (
    ConfigError,
    Settings,
    StambaughConfig,
    configure_logging,
    get_settings,
    load_config,
)
from stambaugh_cov.diagnostics.distance import stambaugh_distance
from stambaugh_cov.errors import EstimationError, InputShapeError
from stambaugh_cov.models import METHODS, stambaugh_fit
from stambaugh_cov.utils.data_loading import read_returns

__all__ = ["build_parser", "main"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="stambaugh_cov CLI")
    parser.add_argument(
        "--structured-logs",
        dest="structured_logs",
        action="store_true",
        help="force JSON structured logs",
    )
    parser.add_argument(
        "--plain-logs",
        dest="structured_logs",
        action="store_false",
        help="force plain text logs",
    )
    parser.set_defaults(structured_logs=None)

    subparsers = parser.add_subparsers(dest="command", required=True)

    show = subparsers.add_parser("show-settings", help="Print the resolved settings")
    show.add_argument("--json", action="store_true", help="JSON output")

    def add_common(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("returns", type=Path, help="Return panel (csv/parquet/pickle)")
        sub.add_argument(
            "--method",
            nargs="+",
            choices=sorted(METHODS),
            default=["classic", "robust"],
            help="Models to fit (at most two)",
        )
        sub.add_argument("--config", type=str, help="YAML options file, looked up in the configs folder first")
        sub.add_argument("--json", action="store_true", help="JSON output")

    fit = subparsers.add_parser("fit", help="Fit Stambaugh models")
    add_common(fit)

    dist = subparsers.add_parser("distance", help="Distances and outliers per cohort")
    add_common(dist)
    dist.add_argument("--level", type=float, default=None, help="Chi-square quantile level")
    dist.add_argument("--plot", type=Path, help="Save the distance figure to this path")

    return parser


def _configure_logging(structured: bool | None, settings: Settings, command: str) -> None:
    configure_logging(settings=settings, structured=structured, context={"command": command})


def _print_payload(payload: dict[str, Any], *, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, sort_keys=True, default=str))
    else:
        for key, value in payload.items():
            print(f"{key}: {value}")


def _load_estimator_config(path: str | None, settings: Settings) -> StambaughConfig:
    if path is None:
        return StambaughConfig()
    return load_config(
        path, StambaughConfig, search_dirs=(settings.configs_dir, settings.project_root)
    )


def _fit_payload(args: argparse.Namespace, settings: Settings) -> dict[str, Any]:
    config = _load_estimator_config(args.config, settings)
    models = stambaugh_fit(read_returns(args.returns), args.method, config=config)
    if args.command == "fit":
        return models.to_dict()

    level = config.level if args.level is None else args.level
    report = stambaugh_distance(models, level)
    if args.plot is not None:
        from stambaugh_cov.evaluation.plots import plot_stambaugh_distances

        fig = plot_stambaugh_distances(report)
        args.plot.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(args.plot, dpi=150, bbox_inches="tight")

    payload: dict[str, Any] = {
        "level": report.level,
        "boundaries": [int(b) for b in report.boundaries],
    }
    for name, record in report.records.items():
        index = record.frame.index
        payload[name] = {
            "thresholds": [float(t) for t in record.thresholds],
            "outliers": [str(index[pos]) for pos in record.flagged],
        }
    return payload


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    settings = get_settings()
    _configure_logging(args.structured_logs, settings, args.command)

    try:
        if args.command == "show-settings":
            _print_payload(settings.to_dict(), as_json=args.json)
        elif args.command in {"fit", "distance"}:
            _print_payload(_fit_payload(args, settings), as_json=args.json)
        else:  # pragma: no cover - argparse rejects unknown commands
            parser.error(f"Unknown command: {args.command}")
    except FileNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    except (ConfigError, InputShapeError, EstimationError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
