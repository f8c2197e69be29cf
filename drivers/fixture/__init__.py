"""Data-backed driver serving canned results.

Needs no backend connection, which makes it useful for demos, tests and as a
support driver carrying locally maintained data.
"""

from .driver import FixtureDriver
from .. import register_driver

# Register the fixture driver type
register_driver("fixture", "drivers.fixture.driver", "FixtureDriver")

__all__ = ["FixtureDriver"]
