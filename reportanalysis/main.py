"""Batch normalization of stored analysis job outputs.

• Reads analysis outputs (`.json`, or raw model text in `.txt`/`.md`) from a
  file or directory.
• Normalizes each one into the canonical report.
• Writes, per input, into the output folder:
      ├─ <name>.report.json       # canonical report (current schema + is_legacy)
      ├─ <name>.analysis.csv      # parameter table
      └─ <name>.prediction.csv    # future-risk table
  plus a batch-wide `summary.csv`.

Configuration comes from a profile (see config.py) or from the command line:
    MAX_WORKERS   – (optional) ThreadPoolExecutor size (default 4)
    LOG_LEVEL     – (optional) root log level (default INFO)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

import pandas as pd
from dotenv import load_dotenv
from tqdm import tqdm

from reportanalysis.config import Config, ProfileConfig
from reportanalysis.derive import DEFAULT_POLICY, ScoringPolicy
from reportanalysis.detect import detect
from reportanalysis.exceptions import AnalysisParseError, ConfigurationError
from reportanalysis.export import export_csv
from reportanalysis.normalize import non_medical_message, normalize_analysis, parse_analysis_text

INPUT_SUFFIXES: Final[tuple[str, ...]] = (".json", ".txt", ".md")
SUMMARY_COLUMNS: Final[list[str]] = ["file", "variant", "score", "abnormal", "is_legacy", "error"]

# --------------------------------------------------------------------------------------
# Logging helpers
# --------------------------------------------------------------------------------------


def setup_logging(level: int = logging.INFO, logs_dir: Path = Path("logs")) -> None:
    """Configure a root logger that prints to stdout and also persists errors."""
    fmt = "%(asctime)s | %(levelname)-8s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    root = logging.getLogger()
    root.setLevel(level)

    out_hdlr = logging.StreamHandler(sys.stdout)
    out_hdlr.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    logs_dir.mkdir(parents=True, exist_ok=True)
    err_hdlr = logging.FileHandler(logs_dir / "error.log", encoding="utf-8")
    err_hdlr.setLevel(logging.ERROR)
    err_hdlr.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root.handlers = [out_hdlr, err_hdlr]


# --------------------------------------------------------------------------------------
# Per-file processing
# --------------------------------------------------------------------------------------


@dataclass
class FileResult:
    """Outcome of normalizing one input file (one row of summary.csv)."""

    file: str
    variant: str = ""
    score: int | None = None
    abnormal: int | None = None
    is_legacy: bool | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def collect_inputs(path: Path) -> list[Path]:
    """Return the analysis files under `path` (or `path` itself), sorted."""
    if path.is_file():
        return [path]
    if not path.exists():
        raise FileNotFoundError(path)
    return sorted(p for p in path.iterdir() if p.is_file() and p.suffix.lower() in INPUT_SUFFIXES)


def process_file(path: Path, output_dir: Path, policy: ScoringPolicy = DEFAULT_POLICY) -> FileResult:
    """Normalize one stored analysis output and write its report files."""
    logger = logging.getLogger(__name__)
    try:
        raw = parse_analysis_text(path.read_text(encoding="utf-8"), source=str(path))
    except (OSError, UnicodeDecodeError, AnalysisParseError) as e:
        logger.error("Could not read %s: %s", path, e)
        return FileResult(file=path.name, error=str(e))

    variant = detect(raw)
    report = normalize_analysis(raw, policy)

    message = non_medical_message(raw)
    if message:
        logger.info("%s: %s", path.name, message)

    # Keyed by full file name: stems repeat across .json/.txt/.md
    name = path.name
    document = {**report.to_dict(), "is_legacy": report.is_legacy}
    try:
        (output_dir / f"{name}.report.json").write_text(
            json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8"
        )
        (output_dir / f"{name}.analysis.csv").write_text(export_csv(report, "analysis"), encoding="utf-8")
        (output_dir / f"{name}.prediction.csv").write_text(export_csv(report, "prediction"), encoding="utf-8")
    except OSError as e:
        logger.error("Could not write outputs for %s: %s", path, e)
        return FileResult(file=name, variant=variant.value, error=str(e))

    return FileResult(
        file=name,
        variant=variant.value,
        score=report.health_score.score,
        abnormal=report.abnormal_count,
        is_legacy=report.is_legacy,
    )


# --------------------------------------------------------------------------------------
# Batch orchestration
# --------------------------------------------------------------------------------------


class BatchNormalizer:
    """Normalizes every analysis file under the configured input path."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.output_dir = config.output_path
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger = logging.getLogger(__name__)

    def run(self) -> list[FileResult]:
        inputs = collect_inputs(self.config.input_path)
        if not inputs:
            self.logger.warning("No analysis files found in %s", self.config.input_path)

        policy = self.config.policy
        results: list[FileResult] = []
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as ex, tqdm(
            total=len(inputs), desc="Normalizing"
        ) as bar:
            futures = {ex.submit(process_file, p, self.output_dir, policy): p for p in inputs}
            for fut in as_completed(futures):
                results.append(fut.result())
                bar.update(1)

        results.sort(key=lambda r: r.file)
        self.write_summary(results)

        failed = [r.file for r in results if not r.ok]
        if failed:
            self.logger.error("Failed to normalize: %s", ", ".join(failed))
        else:
            self.logger.info("All %d files normalized successfully", len(results))
        return results

    def write_summary(self, results: list[FileResult]) -> Path:
        path = self.output_dir / "summary.csv"
        df = pd.DataFrame([asdict(r) for r in results], columns=SUMMARY_COLUMNS)
        df.to_csv(path, index=False)
        self.logger.info("Saved batch summary to %s", path)
        return path


# --------------------------------------------------------------------------------------
# CLI entry point
# --------------------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reportanalysis",
        description="Normalize stored report-analysis outputs into canonical reports.",
    )
    parser.add_argument("input", nargs="?", type=Path, help="Analysis file or directory")
    parser.add_argument("-o", "--output", type=Path, help="Output directory")
    parser.add_argument("-p", "--profile", help="Profile name (profiles/<name>.yaml)")
    parser.add_argument("--profiles-dir", type=Path, default=Path("profiles"))
    parser.add_argument("-w", "--workers", type=int, help="Parallel workers")
    parser.add_argument("--log-level", help="Log level (default: INFO)")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Build a Config from a profile, with command-line values taking priority."""
    if args.profile:
        profile_path = None
        for ext in (".yaml", ".yml", ".json"):
            candidate = args.profiles_dir / f"{args.profile}{ext}"
            if candidate.exists():
                profile_path = candidate
                break
        if profile_path is None:
            available = ", ".join(ProfileConfig.list_profiles(args.profiles_dir)) or "none"
            raise ConfigurationError(f"Profile '{args.profile}' not found (available: {available})")
        profile = ProfileConfig.from_file(profile_path)
        if args.input:
            profile.input_path = args.input
        if args.output:
            profile.output_path = args.output
        if args.workers is not None:
            profile.workers = args.workers
        if args.log_level:
            profile.log_level = args.log_level
        return Config.from_profile(profile)

    if not args.input or not args.output:
        raise ConfigurationError("Either --profile or both INPUT and --output are required")
    return Config.build(
        input_path=args.input,
        output_path=args.output,
        workers=args.workers,
        log_level=args.log_level,
    )


def main(argv: list[str] | None = None) -> int:
    """Run the batch normalizer; returns the process exit status."""
    load_dotenv(override=True)
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigurationError as e:
        raise SystemExit(f"Configuration error: {e}")

    setup_logging(config.log_level_value)

    start = datetime.now()
    try:
        results = BatchNormalizer(config).run()
    except FileNotFoundError as e:
        raise SystemExit(f"Input not found: {e}")
    logging.getLogger(__name__).info(
        "Finished in %.1fs",
        (datetime.now() - start).total_seconds(),
    )
    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
