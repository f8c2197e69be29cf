"""Shared fixtures: recording stub drivers and a composed driver factory."""

import copy

import pytest

from drivers import ComposedDriver, DriverManager
from io_utils.config import DictConfigLoader


class StubDriver:
    """Driver returning canned results and recording every operation call."""

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []
        self.config = None
        self.init_count = 0

    def set_config(self, config):
        self.config = config

    def init(self):
        self.init_count += 1

    def __getattr__(self, name):
        if name.startswith("_") or name not in self.__dict__.get("results", {}):
            raise AttributeError(name)

        def operation(*args):
            self.calls.append((name, args))
            result = self.results[name]
            if isinstance(result, Exception):
                raise result
            return copy.deepcopy(result)

        return operation


class ProbingStubDriver(StubDriver):
    """Stub driver that only accepts calls approved by ``accept``."""

    def __init__(self, results=None, accept=None):
        super().__init__(results)
        self.accept = accept or (lambda method, params: True)
        self.probes = []

    def supports_method(self, method, params):
        self.probes.append((method, params))
        return self.accept(method, params)


def build_composed(drivers, method_config=None, main_driver="d1", driver_configs=None):
    """Create an initialized ComposedDriver over ``drivers`` (name -> instance).

    Each driver name doubles as its adapter type; every driver gets a
    non-empty configuration unless ``driver_configs`` says otherwise.
    """
    manager = DriverManager({name: (lambda d=driver: d) for name, driver in drivers.items()})
    configs = {name: {"config": "values"} for name in drivers}
    configs.update(driver_configs or {})
    composed = ComposedDriver(DictConfigLoader(configs), manager)
    config = {
        "general": {"main_driver": main_driver},
        "drivers": {name: name for name in drivers},
    }
    config.update(method_config or {})
    composed.set_config(config)
    composed.init()
    return composed


@pytest.fixture
def composed_factory():
    """Factory building composed drivers around stub drivers."""
    return build_composed


@pytest.fixture
def patron():
    return {
        "id": 1,
        "firstname": "JANE",
        "lastname": "DOE",
        "cat_username": "username",
        "cat_password": "password",
        "email": "",
    }
