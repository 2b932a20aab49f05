from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from dictclient.server.matching import STRATEGIES

RESERVED_DATABASE_NAMES = {"*", "!"}
FAULTABLE_COMMANDS = {"DEFINE", "MATCH", "SHOW DATABASES", "SHOW STRAT", "SHOW INFO"}

FaultAction = Literal["PASS", "DROP", "DELAY", "RESPOND", "BAD_TERMINAL"]


class ServerMeta(BaseModel):
    banner: str = "dictclient test server"


class DatabaseSpec(BaseModel):
    name: str
    description: str
    info: str = ""
    # headword -> definition texts (may be multi-line)
    entries: Dict[str, List[str]] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _name_format(cls, v: str) -> str:
        if not v or any(c.isspace() for c in v) or '"' in v:
            raise ValueError(f"bad database name: {v!r}")
        if v in RESERVED_DATABASE_NAMES:
            raise ValueError(f"reserved database name: {v}")
        return v


class StrategySpec(BaseModel):
    name: str
    description: str

    @field_validator("name")
    @classmethod
    def _implemented(cls, v: str) -> str:
        if v not in STRATEGIES:
            raise ValueError(f"unknown strategy: {v}. Expected one of: {sorted(STRATEGIES)}")
        return v


class HandshakeFault(BaseModel):
    code: int = Field(ge=100, le=599, default=420)
    message: str = "server temporarily unavailable"


class FaultRule(BaseModel):
    action: FaultAction = "PASS"
    p: float = Field(ge=0.0, le=1.0, default=1.0)
    # fixed delay, or [lo, hi] drawn uniformly
    delay_s: Union[float, Tuple[float, float]] = 0.0
    code: int = Field(ge=100, le=599, default=420)
    message: str = "simulated fault"

    @field_validator("action", mode="before")
    @classmethod
    def _upper(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v

    @field_validator("delay_s")
    @classmethod
    def _delay_range(cls, v: Union[float, Tuple[float, float]]) -> Union[float, Tuple[float, float]]:
        lo, hi = v if isinstance(v, tuple) else (v, v)
        if lo < 0 or hi < lo:
            raise ValueError(f"bad delay_s: {v}")
        return v


class FaultProfile(BaseModel):
    handshake: Optional[HandshakeFault] = None
    default: Optional[FaultRule] = None
    per_command: Dict[str, FaultRule] = Field(default_factory=dict)

    @field_validator("per_command")
    @classmethod
    def _known_commands(cls, v: Dict[str, FaultRule]) -> Dict[str, FaultRule]:
        for cmd in v:
            if cmd not in FAULTABLE_COMMANDS:
                raise ValueError(f"unknown command in per_command: {cmd}. Expected one of: {sorted(FAULTABLE_COMMANDS)}")
        return v


class Corpus(BaseModel):
    server: ServerMeta = Field(default_factory=ServerMeta)
    databases: List[DatabaseSpec] = Field(default_factory=list)
    strategies: List[StrategySpec] = Field(default_factory=list)
    default_strategy: Optional[str] = None

    fault_profiles: Dict[str, FaultProfile] = Field(default_factory=dict)
    default_fault_profile: str = "clean"

    @model_validator(mode="after")
    def _consistent(self) -> "Corpus":
        names = [d.name for d in self.databases]
        if len(names) != len(set(names)):
            raise ValueError("duplicate database.name values found")
        strat_names = [s.name for s in self.strategies]
        if len(strat_names) != len(set(strat_names)):
            raise ValueError("duplicate strategy.name values found")
        if self.default_strategy is not None and self.default_strategy not in strat_names:
            raise ValueError(f"default_strategy {self.default_strategy!r} is not a listed strategy")
        if self.fault_profiles and self.default_fault_profile not in self.fault_profiles:
            raise ValueError(f"default_fault_profile {self.default_fault_profile!r} is not a listed profile")
        return self
