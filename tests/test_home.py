import os

import pytest

from envforge.home import HomeManager, get_manager, initialize
from envforge.models import AuthConfig, BuilderType, Context, RunnerType

DEFAULT_CONTEXT = "default"
TEST_CONTEXT = "envd_home_test"
TEST_BUILDER_ADDRESS = "0.0.0.0:12345"
TEST_RUNNER_ADDRESS = "http://localhost"


@pytest.fixture
def dirs(tmp_path):
    return str(tmp_path / "config"), str(tmp_path / "cache")


@pytest.fixture
def manager(dirs):
    return initialize(*dirs)


def _test_context():
    return Context(
        name=TEST_CONTEXT,
        builder=BuilderType.TCP,
        builder_address=TEST_BUILDER_ADDRESS,
        runner=RunnerType.ENVD_SERVER,
        runner_address=TEST_RUNNER_ADDRESS,
    )


def test_initialized_paths_and_default_context(dirs):
    config_dir, cache_dir = dirs
    initialize(config_dir, cache_dir)
    m = get_manager()
    assert m.cache_dir() == cache_dir
    assert m.config_file() == os.path.join(config_dir, "config.envd")
    assert m.context_file() == os.path.join(config_dir, "contexts")
    assert os.path.isfile(m.config_file())
    c = m.context_get_current()
    assert c.builder == BuilderType.DOCKER
    assert c.builder_address == "envd_buildkitd"
    assert c.runner == RunnerType.DOCKER


def test_cache_status_is_persistent(dirs):
    m = initialize(*dirs)
    assert m.cached("test") is False
    m.mark_cache("test", True)
    assert m.cached("test") is True
    m = initialize(*dirs)
    assert m.cached("test") is True
    fresh = HomeManager(*dirs)
    fresh.init()
    assert fresh.cached("test") is True


def test_create_with_use(manager):
    manager.context_create(_test_context(), True)
    contexts = manager.context_list()
    assert contexts.current == TEST_CONTEXT
    c = manager.context_get_current()
    assert c.builder == BuilderType.TCP
    assert c.builder_address == TEST_BUILDER_ADDRESS
    assert c.runner == RunnerType.ENVD_SERVER
    assert c.runner_address == TEST_RUNNER_ADDRESS

    with pytest.raises(ValueError):
        manager.context_remove(TEST_CONTEXT)

    manager.context_use(DEFAULT_CONTEXT)
    assert manager.context_list().current == DEFAULT_CONTEXT
    manager.context_remove(TEST_CONTEXT)
    assert [c.name for c in manager.context_list().contexts] == [DEFAULT_CONTEXT]


def test_create_without_use(manager):
    manager.context_create(_test_context(), False)
    with pytest.raises(ValueError):
        manager.context_create(_test_context(), False)
    assert manager.context_list().current == DEFAULT_CONTEXT
    manager.context_remove(TEST_CONTEXT)
    assert len(manager.context_list().contexts) == 1


def test_contexts_persist_across_managers(dirs, manager):
    manager.context_create(_test_context(), True)
    other = HomeManager(*dirs)
    other.init()
    assert other.context_list().current == TEST_CONTEXT
    assert other.context_get_current() == _test_context()


def test_create_rejects_unknown_builder(manager):
    bad = Context(name="bad", builder="bogus", builder_address="x")
    with pytest.raises(ValueError, match="unknown builder type"):
        manager.context_create(bad, False)


def test_create_rejects_unknown_runner(manager):
    bad = Context(name="bad", runner="bogus")
    with pytest.raises(ValueError, match="unknown runner type"):
        manager.context_create(bad, False)


def test_use_and_remove_missing_context(manager):
    with pytest.raises(LookupError):
        manager.context_use("missing")
    with pytest.raises(LookupError):
        manager.context_remove("missing")


def test_context_list_is_a_copy(manager):
    listing = manager.context_list()
    listing.current = "changed"
    assert manager.context_list().current == DEFAULT_CONTEXT


def test_auth_flow(dirs, manager):
    assert manager.auth_file() == os.path.join(dirs[0], "auth")
    with pytest.raises(LookupError):
        manager.auth_get_current()
    manager.auth_create(AuthConfig(name="ci", jwt_token="token"), True)
    assert manager.auth_get_current() == AuthConfig(name="ci", jwt_token="token")
    # creating the same name again is a no-op
    manager.auth_create(AuthConfig(name="ci", jwt_token="secret"), False)
    assert manager.auth_get_current().jwt_token == "token"
    other = HomeManager(*dirs)
    other.init()
    assert other.auth_get_current().name == "ci"


def test_auth_use_missing(manager):
    with pytest.raises(LookupError):
        manager.auth_use("missing")


def test_init_data_dir(manager):
    path = manager.init_data_dir("mnist")
    assert path == os.path.join(manager.cache_dir(), "data", "mnist")
    assert os.path.isdir(path)
    assert manager.init_data_dir("mnist") == path


def test_clean_cache_removes_directory(manager):
    path = manager.init_data_dir("mnist")
    assert os.path.isdir(path)
    manager.clean_cache()
    assert not os.path.exists(path)
    assert not os.path.exists(manager.cache_dir())
    manager.clean_cache()
    recreated = manager.init_data_dir("mnist")
    assert recreated == path
    assert os.path.isdir(recreated)


def test_corrupt_context_file_raises(dirs):
    config_dir, cache_dir = dirs
    os.makedirs(config_dir)
    with open(os.path.join(config_dir, "contexts"), "w", encoding="utf-8") as fh:
        fh.write("not json")
    m = HomeManager(config_dir, cache_dir)
    with pytest.raises(ValueError):
        m.init()