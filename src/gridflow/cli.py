from __future__ import annotations

import argparse
import logging
from pathlib import Path

from gridflow.contracts import EngineKind, FlowEventKind, ValidationError
from gridflow.core.config import EngineConfig, headless_config, load_engine_config
from gridflow.core.errors import EngineIntegrityError, persist_forensic_artifact
from gridflow.core.ids import batch_id_for
from gridflow.core.randomness import gameplay_random
from gridflow.export import ExportService
from gridflow.flow import DefaultPolicy
from gridflow.persistence import BatchResultStore
from gridflow.simulation import (
    BatchProgress,
    PolicyPlayCaller,
    RandomPlayCaller,
    parse_seed_range,
    run_batch,
    simulate_one_game,
    validate_events,
)

MAX_SEED = 2**31 - 1


def _config_from_args(args: argparse.Namespace) -> EngineConfig:
    if args.config is not None:
        config = load_engine_config(args.config)
        # the CLI never waits on a human penalty decision
        config.human_sides = frozenset()
    else:
        config = headless_config()
    if args.engine is not None:
        config.engine = EngineKind(args.engine)
    if args.max_snaps is not None:
        config.max_snaps = args.max_snaps
    return config


def _simulate(args: argparse.Namespace) -> int:
    seed = args.seed if args.seed is not None else gameplay_random().randint(1, MAX_SEED)
    caller = None
    if args.caller == "random":
        caller = PolicyPlayCaller(DefaultPolicy(), RandomPlayCaller())
    print(f"Seed {seed}")
    record = simulate_one_game(seed, _config_from_args(args), caller=caller)
    for event in record.events:
        if event.kind is FlowEventKind.LOG:
            print(event.message)
    print(f"Final: HOME {record.player_score}, AWAY {record.ai_score} ({record.winner})")
    if args.drives:
        print("Drives:")
        for drive in record.drives:
            print(f"- {drive.side.value}: {drive.plays} plays, {drive.yards} yards, {drive.result}")
    report = validate_events(record.events)
    if not report.ok:
        print("Validation issues:")
        for issue in report.issues:
            print(f"- {issue}")
        return 1
    return 0


def _batch(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    seeds = parse_seed_range(args.seeds)

    def show(progress: BatchProgress) -> None:
        print(f"{progress.done}/{progress.total} games, {progress.passed} passed, {progress.failed} failed")

    summary = run_batch(seeds, config=config, workers=args.workers, chunk_size=args.chunk_size, on_progress=show)
    print(f"Total {summary.total}: {summary.passed} passed, {summary.failed} failed")
    print(f"Average score: HOME {summary.avg_player}, AWAY {summary.avg_ai}")
    for failure in summary.failures:
        print(f"- seed {failure['seed']}: {'; '.join(failure['issues'])}")

    if args.db is not None:
        batch_id = batch_id_for(seeds, config.engine.value)
        store = BatchResultStore(args.db)
        store.record_batch(batch_id, summary, engine=config.engine.value)
        print(f"Recorded batch {batch_id} to {args.db}")
        if args.export is not None:
            outputs = ExportService(args.db).export_batch_results(args.export, batch_id)
            print("Exported datasets:")
            for path in outputs:
                print(f"- {path}")
    elif args.export is not None:
        print("Export needs --db")
        return 2
    return 0 if summary.failed == 0 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="gridflow football game-flow simulator")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")
    parser.add_argument("--forensic-dir", type=Path, default=Path("forensics"), help="where integrity failures are written")
    sub = parser.add_subparsers(dest="command", required=True)

    def common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--engine", choices=[e.value for e in EngineKind], default=None, help="outcome resolver")
        p.add_argument("--config", type=Path, default=None, help="engine config JSON file")
        p.add_argument("--max-snaps", type=int, default=None, help="snap cap per game")

    simulate = sub.add_parser("simulate", help="simulate one headless game and print its log")
    simulate.add_argument("--seed", type=int, default=None, help="game seed; random when omitted")
    simulate.add_argument("--caller", choices=["scripted", "random"], default="scripted", help="play selection")
    simulate.add_argument("--drives", action="store_true", help="print drive summaries")
    common(simulate)
    simulate.set_defaults(handler=_simulate)

    batch = sub.add_parser("batch", help="simulate and validate a range of seeds")
    batch.add_argument("--seeds", default="1-50", help="seed range such as 1-50 or 3,7,9")
    batch.add_argument("--workers", type=int, default=1, help="worker processes")
    batch.add_argument("--chunk-size", type=int, default=25, help="seeds per chunk")
    batch.add_argument("--db", type=Path, default=None, help="duckdb file for batch results")
    batch.add_argument("--export", type=Path, default=None, help="directory for CSV/Parquet exports")
    common(batch)
    batch.set_defaults(handler=_batch)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        return args.handler(args)
    except ValidationError as exc:
        print("Invalid configuration:")
        for issue in exc.issues:
            print(f"- {issue.code} {issue.field_path}: {issue.message}")
        return 2
    except EngineIntegrityError as exc:
        path = persist_forensic_artifact(exc.artifact, args.forensic_dir)
        print(f"Engine integrity failure {exc.artifact.error_code}: {exc}")
        print(f"Forensic artifact written to {path}")
        return 3


if __name__ == "__main__":
    raise SystemExit(main())
