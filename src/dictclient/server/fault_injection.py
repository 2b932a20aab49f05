from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dictclient.net.status import Status

ACTIONS = {"PASS", "DROP", "DELAY", "RESPOND", "BAD_TERMINAL"}


@dataclass(frozen=True)
class FaultDecision:
    action: str  # PASS | DROP | DELAY | RESPOND | BAD_TERMINAL
    delay_s: float = 0.0
    status: Optional[Status] = None


PASS = FaultDecision("PASS")


class FaultInjector:
    """Per-command fault rules for the test server.

    Profile shape:
      handshake: {code: 420, message: "..."}
      default: {action: DELAY, p: 0.1, delay_s: [0.0, 0.5]}
      per_command: {DEFINE: {action: BAD_TERMINAL, code: 420, message: "..."}}
    """

    def __init__(self, rng: random.Random, profile: Dict[str, Any]) -> None:
        self._rng = rng
        self.profile = profile

    def _cfg_for(self, cmd: str) -> Dict[str, Any]:
        d = dict(self.profile.get("default") or {})
        d.update((self.profile.get("per_command") or {}).get(cmd) or {})
        return d

    def handshake(self) -> Optional[Status]:
        h = self.profile.get("handshake")
        if not h:
            return None
        return Status(int(h.get("code", 420)), str(h.get("message", "server temporarily unavailable")))

    def evaluate(self, cmd: str) -> FaultDecision:
        cfg = self._cfg_for(cmd)
        action = str(cfg.get("action", "PASS")).upper()
        if action not in ACTIONS:
            raise ValueError(f"Unknown fault action: {action}")
        if action == "PASS":
            return PASS

        p = float(cfg.get("p", 1.0))
        if self._rng.random() >= p:
            return PASS

        delay = cfg.get("delay_s", 0.0)
        if isinstance(delay, (list, tuple)):
            lo, hi = delay
            delay = self._rng.uniform(float(lo), float(hi)) if float(hi) > 0 else 0.0

        status = None
        if action in {"RESPOND", "BAD_TERMINAL"}:
            status = Status(int(cfg.get("code", 420)), str(cfg.get("message", "simulated fault")))
        return FaultDecision(action, float(delay), status)
