#!/usr/bin/env python3
"""Deployment smoke test for the meeting recall backend.

Usage:
    python scripts/verify_production.py \
        --backend-url https://api.example.com \
        --query "roadmap"

Checks /health/ready and, when --query is given, that POST /api/search
answers with the searchResults / llmResponse shape.

Exit code 0 if all checks pass, 1 if any fail.
"""

import argparse
import sys
from typing import Tuple

import httpx

TIMEOUT = 15.0
# Five attempts with 2+4+6+8s of backoff can precede a search answer.
SEARCH_TIMEOUT = 60.0


def check_health(url: str) -> Tuple[bool, str]:
    """Verify /health/ready returns HTTP 200 with status "ready"."""
    health_url = url.rstrip("/") + "/health/ready"
    try:
        response = httpx.get(health_url, timeout=TIMEOUT, follow_redirects=True)
        try:
            data = response.json()
        except ValueError:
            return False, f"HTTP {response.status_code}, response is not valid JSON"

        checks = data.get("checks", {})
        if response.status_code != 200:
            return False, f"HTTP {response.status_code}, database: {checks.get('database')}"

        if checks.get("provider") == "no_key":
            return True, "Database ok, provider key not configured"
        return True, "All checks healthy"

    except httpx.TimeoutException:
        return False, "Request timed out"
    except httpx.ConnectError as exc:
        return False, f"Connection failed: {exc}"
    except httpx.HTTPError as exc:
        return False, f"HTTP error: {exc}"


def check_search(url: str, query: str) -> Tuple[bool, str]:
    """Verify POST /api/search returns results and a generated answer."""
    search_url = url.rstrip("/") + "/api/search"
    try:
        response = httpx.post(search_url, json={"query": query}, timeout=SEARCH_TIMEOUT)
        if response.status_code != 200:
            return False, f"HTTP {response.status_code}: {response.text[:80]}"

        data = response.json()
        if not isinstance(data.get("searchResults"), list) or not data.get("llmResponse"):
            return False, "Unexpected response shape"
        return True, f"{len(data['searchResults'])} match(es), answer {len(data['llmResponse'])} chars"

    except ValueError:
        return False, "Response is not valid JSON"
    except httpx.TimeoutException:
        return False, "Request timed out"
    except httpx.HTTPError as exc:
        return False, f"HTTP error: {exc}"


def print_results(results: list) -> None:
    """Print a formatted table of check results."""
    header = f"{'CHECK':<20} {'STATUS':<10} {'DETAIL'}"
    separator = "-" * 70
    print()
    print(separator)
    print(header)
    print(separator)
    for name, passed, detail in results:
        status = "PASS" if passed else "FAIL"
        print(f"{name:<20} {status:<10} {detail}")
    print(separator)
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Verify a meeting recall deployment")
    parser.add_argument(
        "--backend-url",
        required=True,
        help="Base URL of the backend API",
    )
    parser.add_argument(
        "--query",
        default=None,
        help="Optional search query to exercise POST /api/search",
    )
    args = parser.parse_args()

    results = []

    passed, detail = check_health(args.backend_url)
    results.append(("Readiness", passed, detail))

    if args.query:
        passed, detail = check_search(args.backend_url, args.query)
        results.append(("Search", passed, detail))

    print_results(results)

    all_passed = all(passed for _, passed, _ in results)
    if all_passed:
        print("All checks passed.")
    else:
        print("Some checks FAILED.")

    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
