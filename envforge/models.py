"""Records kept by the home manager: build contexts and registry credentials."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional


class BuilderType(str, Enum):
    """How the image builder daemon is reached."""

    DOCKER = "docker-container"
    KUBERNETES = "kube-pod"
    TCP = "tcp"

    def __str__(self) -> str:
        return self.value


class RunnerType(str, Enum):
    """Where environments are run."""

    DOCKER = "docker"
    ENVD_SERVER = "envd-server"

    def __str__(self) -> str:
        return self.value


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what}: expected an object, got {data!r}")
    return data


@dataclass
class Context:
    """A named pairing of a builder and a runner."""

    name: str
    builder: BuilderType = BuilderType.DOCKER
    builder_address: str = ""
    runner: RunnerType = RunnerType.DOCKER
    runner_address: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "builder": BuilderType(self.builder).value,
            "builder_address": self.builder_address,
            "runner": RunnerType(self.runner).value,
            "runner_address": self.runner_address,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Context":
        data = _require_mapping(data, cls.__name__)
        return cls(
            name=data.get("name", ""),
            builder=BuilderType(data.get("builder", BuilderType.DOCKER.value)),
            builder_address=data.get("builder_address", ""),
            runner=RunnerType(data.get("runner", RunnerType.DOCKER.value)),
            runner_address=data.get("runner_address"),
        )


@dataclass
class EnvdContext:
    """All known contexts and the name of the one in use."""

    current: str = ""
    contexts: list[Context] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "contexts": [c.to_dict() for c in self.contexts],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnvdContext":
        data = _require_mapping(data, cls.__name__)
        return cls(
            current=data.get("current", ""),
            contexts=[Context.from_dict(c) for c in data.get("contexts") or []],
        )


@dataclass
class AuthConfig:
    """A named credential for the environment server."""

    name: str
    jwt_token: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "jwt_token": self.jwt_token}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthConfig":
        data = _require_mapping(data, cls.__name__)
        return cls(name=data.get("name", ""), jwt_token=data.get("jwt_token", ""))


@dataclass
class EnvdAuth:
    """All known credentials and the name of the one in use."""

    current: str = ""
    auth: list[AuthConfig] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"current": self.current, "auth": [a.to_dict() for a in self.auth]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EnvdAuth":
        data = _require_mapping(data, cls.__name__)
        return cls(
            current=data.get("current", ""),
            auth=[AuthConfig.from_dict(a) for a in data.get("auth") or []],
        )