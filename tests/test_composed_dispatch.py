"""
Tests for composed driver routing.

Tests cover:
- Main driver selection (default and per operation)
- Passthrough of operations without a merge shape
- Unsupported operations and probe vetoes
- Login driver reporting
"""

import logging

import pytest

from conftest import ProbingStubDriver, StubDriver
from drivers import ComposedDriver
from drivers.errors import ConfigurationError, UnsupportedOperation
from drivers.merge import RecordList, SingleRecord
from io_utils.config import DictConfigLoader


class TestInit:
    """Tests for composed driver initialization."""

    def test_missing_main_driver(self, composed_factory):
        with pytest.raises(ConfigurationError, match="Main driver needs to be set."):
            composed_factory({"d1": StubDriver()}, main_driver=None)

    def test_missing_drivers_table(self):
        composed = ComposedDriver(DictConfigLoader({}))
        composed.set_config({"general": {"main_driver": "d1"}})

        with pytest.raises(ConfigurationError):
            composed.init()

    @pytest.mark.parametrize("support_drivers", ["d2", {"d2": True}])
    def test_malformed_operation_table(self, composed_factory, support_drivers):
        """Malformed per-operation tables fail init with a configuration error."""
        with pytest.raises(ConfigurationError, match="Invalid driver configuration"):
            composed_factory(
                {"d1": StubDriver(), "d2": StubDriver()},
                {"get_holding": {"support_drivers": support_drivers}},
            )

    def test_main_driver_property(self, composed_factory):
        composed = composed_factory({"d1": StubDriver()})

        assert composed.main_driver == "d1"


class TestDefaultCall:
    """Tests for passthrough operations."""

    def test_single_main_driver(self, composed_factory, patron):
        """The only configured driver answers the call."""
        d1 = StubDriver({"get_pick_up_locations": ["L1"]})
        composed = composed_factory({"d1": d1})

        assert composed.get_pick_up_locations(patron) == ["L1"]
        assert d1.calls == [("get_pick_up_locations", (patron,))]

    def test_base_main_driver(self, composed_factory, patron):
        """Other drivers are never called for passthrough operations."""
        d1 = StubDriver({"get_pick_up_locations": ["L1"]})
        d2 = StubDriver({"get_pick_up_locations": ["L2"]})
        composed = composed_factory({"d1": d1, "d2": d2})

        assert composed.get_pick_up_locations(patron) == ["L1"]
        assert d2.calls == []

    def test_overwritten_main_driver(self, composed_factory, patron):
        d1 = StubDriver({"get_pick_up_locations": ["L1"]})
        d2 = StubDriver({"get_pick_up_locations": ["L2"]})
        composed = composed_factory(
            {"d1": d1, "d2": d2},
            {"get_pick_up_locations": {"main_driver": "d2"}},
        )

        assert composed.get_pick_up_locations(patron) == ["L2"]
        assert d1.calls == []
        assert composed.get_main_driver_name_for_method("get_pick_up_locations") == "d2"
        assert composed.get_main_driver_name_for_method("get_my_fines") == "d1"

    def test_call_and_attribute_forwarding_agree(self, composed_factory):
        d1 = StubDriver({"place_hold": {"success": True}})
        composed = composed_factory({"d1": d1})

        assert composed.call("place_hold", {"id": "1"}) == {"success": True}
        assert composed.place_hold({"id": "1"}) == {"success": True}
        assert d1.calls == [("place_hold", ({"id": "1"},)), ("place_hold", ({"id": "1"},))]

    def test_driver_exceptions_propagate(self, composed_factory):
        composed = composed_factory({"d1": StubDriver({"place_hold": RuntimeError("backend down")})})

        with pytest.raises(RuntimeError, match="backend down"):
            composed.place_hold({})


class TestUnsupported:
    """Tests for operations the main driver cannot serve."""

    def test_method_missing_on_main_driver(self, composed_factory, caplog):
        """No driver is invoked and the error names the operation."""
        d1 = StubDriver()
        d2 = StubDriver({"cancel_holds": True})
        composed = composed_factory({"d1": d1, "d2": d2})

        with caplog.at_level(logging.INFO, logger="drivers.composed"):
            with pytest.raises(UnsupportedOperation) as exc_info:
                composed.cancel_holds({})

        assert exc_info.value.method == "cancel_holds"
        assert str(exc_info.value) == 'unsupported: Method "cancel_holds" is not supported.'
        assert d2.calls == []
        assert "Method cancel_holds is not supported by driver d1" in caplog.text

    def test_probe_veto(self, composed_factory):
        d1 = ProbingStubDriver({"place_hold": True}, accept=lambda method, params: False)
        composed = composed_factory({"d1": d1})

        with pytest.raises(UnsupportedOperation):
            composed.place_hold({"id": "1"})

        assert d1.probes == [("place_hold", [{"id": "1"}])]
        assert d1.calls == []

    def test_unresolvable_main_driver(self, composed_factory):
        composed = composed_factory({"d1": StubDriver({"place_hold": True})}, main_driver="missing")

        with pytest.raises(UnsupportedOperation):
            composed.place_hold({})

    def test_merged_operation_on_unsupporting_main(self, composed_factory):
        composed = composed_factory({"d1": StubDriver()})

        with pytest.raises(UnsupportedOperation):
            composed.get_holding("1")

    def test_supports_method(self, composed_factory):
        composed = composed_factory({"d1": StubDriver({"get_holding": []})})

        assert composed.supports_method("get_holding", ["1"])
        assert not composed.supports_method("renew_my_items", [{}])


class TestOperations:
    """Tests for the operation table and attribute forwarding."""

    def test_private_names_are_not_forwarded(self, composed_factory):
        composed = composed_factory({"d1": StubDriver()})

        with pytest.raises(AttributeError):
            composed._not_an_operation

    def test_builtin_shapes(self, composed_factory):
        composed = composed_factory({"d1": StubDriver()})

        assert composed.operation_shape("get_my_profile") == SingleRecord()
        assert composed.operation_shape("get_holding") == RecordList(("holdings", "electronic_holdings"))
        assert composed.operation_shape("get_statuses").base_key == "id"
        assert composed.operation_shape("place_hold") is None

    def test_register_operation(self, composed_factory):
        """A registered shape turns a passthrough operation into a merged one."""
        d1 = StubDriver({"get_my_bookings": [{"booking_id": "B1"}]})
        d2 = StubDriver({"get_my_bookings": [{"booking_id": "B1", "room": "101"}]})
        config = {
            "get_my_bookings": {
                "support_drivers": {"d2": "room"},
                "merge_keys": {"d2": "booking_id"},
            }
        }
        composed = composed_factory({"d1": d1, "d2": d2}, config)

        assert composed.get_my_bookings({}) == [{"booking_id": "B1"}]
        assert d2.calls == []

        composed.register_operation("get_my_bookings", RecordList())

        assert composed.get_my_bookings({}) == [{"booking_id": "B1", "room": "101"}]


class TestLogin:
    """Tests for login driver reporting."""

    def test_login_drivers(self, composed_factory):
        composed = composed_factory({"d1": StubDriver(), "d2": StubDriver()})

        assert composed.get_login_drivers() == ["d1"]
        assert composed.get_default_login_driver() == "d1"

    def test_patron_login_is_passthrough(self, composed_factory, patron):
        d1 = StubDriver({"patron_login": patron})
        composed = composed_factory({"d1": d1})

        assert composed.patron_login("username", "password") == patron
        assert d1.calls == [("patron_login", ("username", "password"))]
