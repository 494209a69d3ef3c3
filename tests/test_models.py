import pytest

from envforge.models import (
    AuthConfig,
    BuilderType,
    Context,
    EnvdAuth,
    EnvdContext,
    RunnerType,
)


def test_context_round_trip():
    ctx = Context(
        name="envd_home_test",
        builder=BuilderType.TCP,
        builder_address="0.0.0.0:12345",
        runner=RunnerType.ENVD_SERVER,
        runner_address="http://localhost",
    )
    assert Context.from_dict(ctx.to_dict()) == ctx


def test_context_without_runner_address_round_trip():
    ctx = Context(name="default", builder_address="envd_buildkitd")
    restored = Context.from_dict(ctx.to_dict())
    assert restored == ctx
    assert restored.runner_address is None


def test_context_serialises_enum_values():
    data = Context(name="x", builder=BuilderType.KUBERNETES).to_dict()
    assert data["builder"] == BuilderType.KUBERNETES.value
    assert data["runner"] == RunnerType.DOCKER.value


def test_context_from_dict_rejects_unknown_builder():
    with pytest.raises(ValueError):
        Context.from_dict({"name": "x", "builder": "bogus"})


def test_context_from_dict_rejects_unknown_runner():
    with pytest.raises(ValueError):
        Context.from_dict({"name": "x", "runner": "bogus"})


def test_context_from_dict_rejects_non_mapping():
    with pytest.raises(ValueError):
        Context.from_dict(["not", "a", "mapping"])


def test_envd_context_round_trip():
    state = EnvdContext(
        current="default",
        contexts=[
            Context(name="default", builder_address="envd_buildkitd"),
            Context(name="remote", builder=BuilderType.TCP, builder_address="0.0.0.0:12345"),
        ],
    )
    assert EnvdContext.from_dict(state.to_dict()) == state


def test_envd_context_from_empty_dict():
    state = EnvdContext.from_dict({})
    assert state.current == ""
    assert state.contexts == []


def test_auth_round_trip():
    auth = EnvdAuth(current="ci", auth=[AuthConfig(name="ci", jwt_token="token")])
    assert EnvdAuth.from_dict(auth.to_dict()) == auth


def test_enum_str_is_value():
    builder = BuilderType(BuilderType.DOCKER.value)
    runner = RunnerType(RunnerType.ENVD_SERVER.value)
    assert builder is BuilderType.DOCKER
    assert runner is RunnerType.ENVD_SERVER
    assert str(builder) == BuilderType.DOCKER.value
    assert str(runner) == RunnerType.ENVD_SERVER.value