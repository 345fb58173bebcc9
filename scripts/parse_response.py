#!/usr/bin/env python3
"""
Parse a model response into editor blocks and sessions.

Usage:
    # Parse locally from a file or stdin:
    python scripts/parse_response.py resposta.md
    cat resposta.md | python scripts/parse_response.py

    # Force the result into an expected structure:
    python scripts/parse_response.py resposta.md --expected estrutura.json

    # Send the same payload to a running API instead:
    # uvicorn transports.http_fastapi_sync:app --port 8080
    python scripts/parse_response.py resposta.md --api http://127.0.0.1:8080/parse --token $TOKEN
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import httpx

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from copydesk.parser import parse_ai_response, parse_ai_response_with_structure  # noqa: E402
from copydesk.sessions import convert_parsed_blocks_to_sessions  # noqa: E402


def parse_locally(markdown: str, expected: dict[str, Any] | None) -> dict[str, Any]:
    if expected:
        parsed = parse_ai_response_with_structure(markdown, expected)
    else:
        parsed = parse_ai_response(markdown)
    sessions = convert_parsed_blocks_to_sessions(parsed.blocks)
    return {"parsed": parsed.asdict(), "sessions": [session.asdict() for session in sessions]}


def parse_remotely(
    markdown: str, expected: dict[str, Any] | None, *, api_url: str, token: str
) -> dict[str, Any]:
    payload: dict[str, Any] = {"markdown": markdown}
    if expected:
        payload["expectedStructure"] = expected
    response = httpx.post(
        api_url,
        json=payload,
        headers={"Authorization": f"Bearer {token}"},
        timeout=10.0,
    )
    response.raise_for_status()
    return response.json()


def main() -> None:
    parser = argparse.ArgumentParser(description="Parse a model response into editor blocks.")
    parser.add_argument("source", nargs="?", type=Path, help="Markdown file (default: stdin)")
    parser.add_argument("--expected", type=Path, help="JSON file with the expected structure")
    parser.add_argument("--api", help="POST to this /parse URL instead of parsing locally")
    parser.add_argument("--token", default="", help="Bearer token for --api")
    args = parser.parse_args()

    markdown = args.source.read_text(encoding="utf-8") if args.source else sys.stdin.read()
    expected = json.loads(args.expected.read_text(encoding="utf-8")) if args.expected else None

    if args.api:
        try:
            result = parse_remotely(markdown, expected, api_url=args.api, token=args.token)
        except httpx.HTTPError as exc:
            raise SystemExit(f"API request failed: {exc}") from exc
    else:
        result = parse_locally(markdown, expected)

    print(json.dumps(result, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
