"""Regression runner for the response parser scenario matrix."""

from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tests.regression.parser_matrix import run_matrix  # noqa: E402


def main() -> None:
    os.chdir(REPO_ROOT)

    parser = argparse.ArgumentParser(description="Parser regression matrix runner.")
    parser.add_argument(
        "--json",
        type=Path,
        default=None,
        help="Optional path for the JSON results of every scenario.",
    )
    parser.add_argument(
        "--markdown",
        type=Path,
        default=None,
        help="Optional path for a markdown summary table.",
    )
    args = parser.parse_args()

    results = run_matrix()
    if args.json:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        args.json.write_text(json.dumps(results, indent=2, ensure_ascii=False), encoding="utf-8")
    if args.markdown:
        _write_markdown(results, args.markdown)

    failures = [
        f"{payload['scenario']}: {failure}"
        for payload in results
        for failure in payload["failures"]
    ]
    if failures:
        raise SystemExit("Regression mismatches:\n" + "\n".join(failures))

    print(f"Parser matrix passed for {len(results)} scenarios.")


def _write_markdown(results: list[dict[str, Any]], path: Path) -> None:
    lines = [
        "# Parser Matrix",
        "",
        f"_Generated at {datetime.now(timezone.utc).isoformat()}_",
        "",
        "| Scenario | Strategy | Blocks | Types | Sessions | Status |",
        "|----------|----------|--------|-------|----------|--------|",
    ]
    for payload in results:
        types = ", ".join(block["type"] for block in payload["blocks"]) or "-"
        status = "ok" if not payload["failures"] else "; ".join(payload["failures"])
        lines.append(
            f"| {payload['scenario']} | {payload['strategy'] or '-'} | {len(payload['blocks'])} "
            f"| {types} | {payload['sessions']} | {status} |"
        )

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    print(f"Parser matrix saved to {path}.")


if __name__ == "__main__":
    main()
