#!/usr/bin/env python3
"""
Payescrow scenario replayer

Replays a YAML scenario (accounts, then a list of timed operations) through an
engine and prints a YAML report of every step and the final balances.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click
import yaml

from payescrow.config import SECONDS_PER_DAY, EngineConfig
from payescrow.engine import Engine
from payescrow.errors import ErrorCode
from payescrow.test_accounts import CURRENCIES, identity, token
from payescrow.types import OperationType
from tools.yaml_dump import dump_yaml, write_yaml

logger = logging.getLogger(__name__)

_IDENTITY_KEYS = frozenset({"merchant", "fee_collector", "arbitrator", "new_owner"})
_REFERENCE_KEYS = frozenset({"escrow_id", "link_id"})


class ScenarioError(Exception):
    """Scenario file is malformed or references an unknown alias."""


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ScenarioError(f"{where} must be a mapping, got {type(value).__name__}")
    return value


def _integer(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScenarioError(f"{where} must be an integer, got {value!r}")
    return value


def _name(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ScenarioError(f"{where} must be a non-empty name, got {value!r}")
    return value


class ScenarioClock:
    def __init__(self, start: int):
        self.start = start
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_to(self, offset: Optional[int]) -> None:
        if offset is not None:
            self.now = self.start + offset


def _resolve_currency(name: str) -> bytes:
    return CURRENCIES.get(name) or token(name)


class ScenarioRunner:
    def __init__(self, scenario: Any, log_level: str = "WARNING"):
        if not isinstance(scenario, dict):
            raise ScenarioError(f"scenario must be a mapping, got {type(scenario).__name__}")
        steps = scenario.get("steps") or []
        if not isinstance(steps, list):
            raise ScenarioError("steps must be a list")
        cfg = _mapping(scenario.get("config"), "config")
        self.clock = ScenarioClock(_integer(scenario.get("start_time", 0), "start_time"))
        self.names: dict[bytes, str] = {}
        roles = {
            role: self._identity(_name(cfg.get(role, role), f"config.{role}"))
            for role in ("owner", "fee_collector", "arbitrator")
        }
        try:
            config = EngineConfig(
                **roles,
                fee_rate_bps=_integer(cfg.get("fee_rate_bps", 0), "config.fee_rate_bps"),
                default_duration_days=_integer(
                    cfg.get("default_duration_days", 14), "config.default_duration_days"
                ),
                log_level=log_level,
            )
        except ValueError as exc:
            raise ScenarioError(f"config: {exc}") from exc
        self.engine = Engine.from_config(config, clock=self.clock)
        self.aliases: dict[str, bytes] = {}
        self.scenario = scenario
        self.steps = steps
        self._seed()

    def _identity(self, name: str) -> bytes:
        ident = identity(name)
        self.names.setdefault(ident, name)
        return ident

    def _seed(self) -> None:
        # Genesis seeding happens before any operation, directly on the state.
        state = self.engine.state
        currencies = self.scenario.get("currencies") or []
        if not isinstance(currencies, list):
            raise ScenarioError("currencies must be a list")
        for symbol in currencies:
            state.supported_currencies[_resolve_currency(_name(symbol, "currency"))] = True
        for name, account in _mapping(self.scenario.get("accounts"), "accounts").items():
            where = f"accounts.{name}"
            account = _mapping(account, where)
            acct = state.account(self._identity(_name(name, "account name")))
            for cur, amount in _mapping(account.get("balances"), f"{where}.balances").items():
                acct.balances[_resolve_currency(_name(cur, "currency"))] = _integer(
                    amount, f"{where}.balances.{cur}"
                )
            for cur, amount in _mapping(account.get("allowances"), f"{where}.allowances").items():
                acct.allowances[_resolve_currency(_name(cur, "currency"))] = _integer(
                    amount, f"{where}.allowances.{cur}"
                )
            acct.accepts_native = bool(account.get("accepts_native", True))

    def _payload(self, raw: dict[str, Any]) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for key, v in raw.items():
            if key in _IDENTITY_KEYS:
                payload[key] = self._identity(str(v))
            elif key == "currency":
                payload[key] = _resolve_currency(str(v))
            elif key in _REFERENCE_KEYS:
                alias = str(v).lstrip("$")
                if alias not in self.aliases:
                    raise ScenarioError(f"unknown alias {v!r} for {key}")
                payload[key] = self.aliases[alias]
            else:
                payload[key] = v
        return payload

    def _parse_step(
        self, index: int, step: Any
    ) -> tuple[OperationType, str, Optional[int], int, dict[str, Any]]:
        where = f"step {index}"
        if not isinstance(step, dict):
            raise ScenarioError(f"{where} must be a mapping, got {type(step).__name__}")
        try:
            op_type = OperationType(step.get("op"))
        except (TypeError, ValueError) as exc:
            raise ScenarioError(f"{where}: unknown op {step.get('op')!r}") from exc
        caller = _name(step.get("caller"), f"{where}: caller")
        offset: Optional[int] = None
        if "day" in step:
            offset = _integer(step["day"], f"{where}: day") * SECONDS_PER_DAY
        elif "at" in step:
            offset = _integer(step["at"], f"{where}: at")
        value = _integer(step.get("value", 0), f"{where}: value")
        payload = self._payload(_mapping(step.get("payload"), f"{where}: payload"))
        if "save_as" in step:
            _name(step["save_as"], f"{where}: save_as")
        if "expect" in step:
            expected = str(step["expect"])
            if expected != "ok" and expected not in ErrorCode.__members__:
                raise ScenarioError(f"{where}: unknown expected outcome {expected!r}")
        return op_type, caller, offset, value, payload

    def run(self) -> tuple[dict[str, Any], bool]:
        steps_out: list[dict[str, Any]] = []
        all_matched = True
        for index, step in enumerate(self.steps):
            op_type, caller_name, offset, value, payload = self._parse_step(index, step)

            self.clock.advance_to(offset)
            result = self.engine.submit(op_type, self._identity(caller_name), payload, value=value)
            if result.ok and result.created_id is not None and step.get("save_as"):
                self.aliases[step["save_as"]] = result.created_id

            outcome = "ok" if result.ok else result.error.code.name
            entry: dict[str, Any] = {
                "step": index,
                "op": op_type.value,
                "caller": caller_name,
                "time": self.clock.now,
                "outcome": outcome,
            }
            if result.created_id is not None:
                entry["created_id"] = result.created_id.hex()
            if "expect" in step:
                entry["matched"] = str(step["expect"]) == outcome
                all_matched = all_matched and entry["matched"]
            steps_out.append(entry)

        return {"steps": steps_out, "final": self._final_state()}, all_matched

    def _final_state(self) -> dict[str, Any]:
        state = self.engine.state
        currency_names = {v: k for k, v in CURRENCIES.items()}
        balances: dict[str, dict[str, int]] = {}
        for addr, acct in state.accounts.items():
            name = self.names.get(addr, addr.hex())
            balances[name] = {
                currency_names.get(c, c.hex()): v for c, v in acct.balances.items() if v
            }
        escrows = {
            alias: state.escrows[eid].state.name
            for alias, eid in self.aliases.items()
            if eid in state.escrows
        }
        return {"balances": balances, "escrows": escrows}


def run_scenario(scenario: Any, log_level: str = "WARNING") -> tuple[dict[str, Any], bool]:
    return ScenarioRunner(scenario, log_level=log_level).run()


@click.command()
@click.argument("scenario", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.option(
    "--report",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write the YAML report to this file",
)
def main(scenario: Path, verbose: bool, report: Optional[Path]) -> None:
    """Replay a payescrow SCENARIO file and print a YAML report."""
    log_level = "DEBUG" if verbose else "WARNING"
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        data = yaml.safe_load(scenario.read_text())
        result, all_matched = run_scenario(data, log_level=log_level)
    except (yaml.YAMLError, ScenarioError) as exc:
        logger.error("Scenario %s is invalid: %s", scenario, exc)
        sys.exit(2)

    if report is not None:
        write_yaml(report, result)
        logger.info("Wrote report to %s", report)
    click.echo(dump_yaml(result))
    sys.exit(0 if all_matched else 1)


if __name__ == "__main__":
    main()
