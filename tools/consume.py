"""Consume fixtures and validate against the payescrow specs."""

from __future__ import annotations

import json
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

from payescrow.state_transition import apply_op  # noqa: E402
from tools.fixtures_io import op_from_json, state_from_json, state_to_json  # noqa: E402


def _check_state_cases(path: Path) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        pre_state = state_from_json(case["pre_state"])
        op = op_from_json(case["op"])
        post_state, result = apply_op(pre_state, op)

        expected = case["expected"]
        if result.ok != expected["ok"]:
            failures.append(f"{path.name}:{case['name']}: ok_mismatch")
            continue

        actual_err = result.error.code.name if result.error else None
        if actual_err != expected["error"]:
            failures.append(f"{path.name}:{case['name']}: error_mismatch")
            continue

        if state_to_json(post_state) != expected["post_state"]:
            failures.append(f"{path.name}:{case['name']}: post_state_mismatch")

    return failures


def main() -> None:
    fixtures = ROOT / "fixtures"

    failures: list[str] = []
    for path in sorted(fixtures.rglob("*.json")):
        failures.extend(_check_state_cases(path))

    if failures:
        for f in failures:
            print("FAIL", f)
        raise SystemExit(1)

    print("All fixtures passed")


if __name__ == "__main__":
    main()
