"""Unit tests for the capability descriptor and method parity."""

import pytest

from sugo_serialport.adapter import SerialportModule
from sugo_serialport.errors import SpecValidationError
from sugo_serialport.interface import SerialportInterface
from sugo_serialport.protocol import NAME, PIPE_EVENTS, VERSION
from sugo_serialport.spec import (
    action,
    find_action,
    implemented_methods,
    interface_spec,
    module_spec,
    validate_spec,
)


def _described(spec: dict) -> set[str]:
    return {name for name in spec["methods"] if not name.startswith(("$", "_"))}


@pytest.mark.unit
class TestDescriptors:
    """Tests for the module and interface descriptors."""

    def test_module_spec_is_valid(self) -> None:
        validate_spec(module_spec())

    def test_interface_spec_is_valid(self) -> None:
        validate_spec(interface_spec())

    def test_identity(self) -> None:
        spec = module_spec()
        assert spec["name"] == NAME
        assert spec["version"] == VERSION
        assert spec["desc"]

    def test_events_described(self) -> None:
        for spec in (module_spec(), interface_spec()):
            assert set(spec["events"]) == set(PIPE_EVENTS)

    def test_connect_operation_per_variant(self) -> None:
        assert "connect" in module_spec()["methods"]
        assert "SerialPort" not in module_spec()["methods"]
        assert "SerialPort" in interface_spec()["methods"]
        assert "connect" not in interface_spec()["methods"]

    def test_serial_port_params(self) -> None:
        params = interface_spec()["methods"]["SerialPort"]["params"]
        assert [p["name"] for p in params] == ["path", "options", "openCallback"]

    def test_descriptor_is_fresh_copy(self) -> None:
        spec = module_spec()
        spec["methods"].pop("ping")
        assert "ping" in module_spec()["methods"]


@pytest.mark.unit
class TestMethodParity:
    """Implemented wire names must equal the described ones exactly."""

    def test_module_parity(self) -> None:
        module = SerialportModule({})
        assert implemented_methods(module) == _described(module.spec)

    def test_interface_parity(self) -> None:
        interface = SerialportInterface({})
        assert implemented_methods(interface) == _described(interface.spec)

    def test_dollar_spec_lookup(self) -> None:
        module = SerialportModule({})
        assert getattr(module, "$spec") == module.spec
        interface = SerialportInterface({})
        assert getattr(interface, "$spec") == interface.spec

    def test_unknown_attribute_still_raises(self) -> None:
        with pytest.raises(AttributeError):
            getattr(SerialportModule({}), "no_such_thing")

    def test_find_action_by_wire_name(self) -> None:
        module = SerialportModule({})
        assert find_action(module, "isOpen") == module.is_open
        assert find_action(module, "assert") == module.assert_

    def test_find_action_unknown(self) -> None:
        with pytest.raises(AttributeError):
            find_action(SerialportModule({}), "reboot")

    def test_private_wire_names_excluded(self) -> None:
        class Custom:
            @action("ping")
            def ping(self) -> str:
                return "pong"

            @action("_hidden")
            def hidden(self) -> None:
                pass

        assert implemented_methods(Custom()) == {"ping"}


@pytest.mark.unit
class TestValidateSpec:
    """Tests for validate_spec failure reporting."""

    def test_missing_name_and_methods(self) -> None:
        with pytest.raises(SpecValidationError) as exc_info:
            validate_spec({"version": "1.0.0"})
        problems = exc_info.value.problems
        assert "name must be a non-empty string" in problems
        assert "methods must be a non-empty object" in problems

    def test_bad_param(self) -> None:
        spec = module_spec()
        spec["methods"]["write"]["params"] = [{"name": "data", "type": "object"}]
        with pytest.raises(SpecValidationError, match=r"methods\.write\.params\[0\]\.desc"):
            validate_spec(spec)

    def test_bad_return(self) -> None:
        spec = module_spec()
        spec["methods"]["ping"]["return"] = "string"
        with pytest.raises(SpecValidationError, match=r"methods\.ping\.return must be an object"):
            validate_spec(spec)

    def test_bad_event(self) -> None:
        spec = module_spec()
        spec["events"]["data"] = {}
        with pytest.raises(SpecValidationError, match=r"events\.data\.desc"):
            validate_spec(spec)

    def test_collects_all_problems(self) -> None:
        spec = module_spec()
        spec["name"] = ""
        spec["methods"]["close"] = {"params": []}
        with pytest.raises(SpecValidationError) as exc_info:
            validate_spec(spec)
        assert len(exc_info.value.problems) == 2
